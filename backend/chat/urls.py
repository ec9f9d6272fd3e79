from django.urls import path
from chat import views

urlpatterns = [
    path("", views.chat_root_view),

    # Import
    path("upload/", views.ExportUploadView.as_view(), name="chat-upload"),

    # Statistics
    path("stats/", views.stats_view, name="chat-stats"),
    path("stats/charts/<str:chart>.png", views.stats_chart_view, name="chat-stats-chart"),

    # Conversations
    path("conversation-ids/", views.conversation_ids_view, name="chat-conversation-ids"),
    path("conversations/<str:pk>/", views.ConversationDetailView.as_view(), name="chat-conversation-detail"),
]
