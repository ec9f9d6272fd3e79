"""
Label conversations that have no topics yet.

Usage:
    python manage.py analyze_topics
    python manage.py analyze_topics --limit 50 --batch-size 5
"""

import time

from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Analyse topics for conversations that don't have any yet."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit", type=int, default=200,
            help="Max conversations to process (default: 200).",
        )
        parser.add_argument(
            "--batch-size", type=int, default=None,
            help="Conversations per model call (default: TOPIC_BATCH_SIZE).",
        )
        parser.add_argument(
            "--delay", type=float, default=0.5,
            help="Seconds to wait between batches (default: 0.5).",
        )

    def handle(self, *args, **options):
        from django.conf import settings
        from gpt.analysis import (
            NoMessagesError,
            TopicAnalysisFailed,
            analyze_conversations,
            chunked,
            pending_conversation_ids,
        )

        ids = pending_conversation_ids(limit=options["limit"])
        self.stdout.write(f"Processing {len(ids)} conversation(s)...")
        if not ids:
            return

        batch_size = options["batch_size"] or settings.TOPIC_BATCH_SIZE
        saved = failed = 0
        for batch in chunked(ids, batch_size):
            try:
                result = analyze_conversations(batch, batch_size=batch_size)
            except (NoMessagesError, TopicAnalysisFailed) as exc:
                failed += 1
                self.stdout.write(self.style.WARNING(f"  ⚠ batch of {len(batch)} skipped: {exc}"))
            else:
                saved += result.topics_saved
                self.stdout.write(self.style.SUCCESS(f"  ✓ {len(batch)} conversations, {result.topics_saved} topics"))
            time.sleep(options["delay"])

        self.stdout.write(self.style.SUCCESS(f"Done. {saved} topics saved, {failed} batch(es) skipped."))
