"""
Import a conversation export from disk.

Usage:
    python manage.py import_conversations exports/2025-01-01_2025-01-31.json
    python manage.py import_conversations export.json --force
"""

import json

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Import conversations and messages from an exported JSON file."

    def add_arguments(self, parser):
        parser.add_argument("path")
        parser.add_argument(
            "--force", action="store_true",
            help="Import even if this period was already processed.",
        )

    def handle(self, *args, **options):
        from chat.ingest import DuplicateExportError, IngestError, ingest_export

        try:
            with open(options["path"], encoding="utf-8-sig") as fh:
                document = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f"Cannot read {options['path']}: {exc}")

        try:
            result = ingest_export(document, force=options["force"])
        except DuplicateExportError as exc:
            raise CommandError(f"{exc.filename} was already processed; use --force to re-import")
        except IngestError as exc:
            raise CommandError(str(exc))

        self.stdout.write(
            self.style.SUCCESS(
                f"Imported {result.filename}: {result.conversations_processed} conversations "
                f"({result.conversations_created} new), {result.messages_processed} messages"
            )
        )
