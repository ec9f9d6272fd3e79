import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("chatbot_id", models.CharField(blank=True, max_length=64, null=True)),
                ("chatbot_name", models.CharField(blank=True, max_length=200, null=True)),
                ("country", models.CharField(default="Unknown", max_length=100)),
                ("created_at", models.DateTimeField(db_index=True)),
                ("title", models.CharField(blank=True, max_length=500, null=True)),
                ("message_count", models.PositiveIntegerField(default=0)),
                ("min_score", models.FloatField(blank=True, null=True)),
                ("source", models.CharField(blank=True, max_length=100, null=True)),
                ("user_id_chat", models.CharField(blank=True, max_length=128, null=True)),
                ("anonymous_id", models.CharField(blank=True, max_length=128, null=True)),
                ("month", models.PositiveSmallIntegerField(db_index=True)),
                ("year", models.PositiveSmallIntegerField(db_index=True)),
                ("sentiment", models.CharField(blank=True, max_length=50, null=True)),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["year", "month"], name="chat_conv_year_month_idx")],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("role", models.CharField(max_length=20)),
                ("content", models.TextField(blank=True, default="")),
                ("score", models.FloatField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("step_id", models.CharField(blank=True, max_length=64, null=True)),
                ("message_type", models.CharField(default="text", max_length=30)),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.conversation",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        migrations.CreateModel(
            name="Topic",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("topic_name", models.CharField(max_length=200)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("relevance_score", models.FloatField(default=0.5)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="topics",
                        to="chat.conversation",
                    ),
                ),
            ],
            options={"ordering": ["-relevance_score", "topic_name"]},
        ),
        migrations.AddConstraint(
            model_name="topic",
            constraint=models.UniqueConstraint(fields=("conversation", "topic_name"), name="unique_conversation_topic"),
        ),
        migrations.CreateModel(
            name="ProcessedFile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("filename", models.CharField(max_length=100, unique=True)),
                ("start_date", models.CharField(max_length=20)),
                ("end_date", models.CharField(max_length=20)),
                ("total_conversations", models.PositiveIntegerField(default=0)),
                ("processed_at", models.DateTimeField(auto_now_add=True)),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="processed_files",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-processed_at"]},
        ),
    ]
