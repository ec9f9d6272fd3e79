from django.urls import path
from gpt import views

urlpatterns = [
    path("", views.gpt_root_view),
    path("analyze-topics/", views.analyze_topics, name="gpt-analyze-topics"),
]
