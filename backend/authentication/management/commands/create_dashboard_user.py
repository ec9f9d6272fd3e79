"""
Create a dashboard user.

Usage:
    python manage.py create_dashboard_user admin@example.com --role admin
    python manage.py create_dashboard_user viewer@example.com --password s3cret
"""

from getpass import getpass

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Create a user that can log into the reports dashboard."

    def add_arguments(self, parser):
        parser.add_argument("email")
        parser.add_argument("--role", choices=["admin", "viewer"], default="viewer")
        parser.add_argument("--password", default=None, help="Prompted for when omitted.")

    def handle(self, *args, **options):
        from authentication.models import CustomUser

        email = options["email"].strip().lower()
        if CustomUser.objects.filter(email=email).exists():
            raise CommandError(f"User {email} already exists")

        password = options["password"] or getpass("Password: ")
        if not password:
            raise CommandError("A password is required")

        user = CustomUser.objects.create_user(email=email, password=password, role=options["role"])
        self.stdout.write(self.style.SUCCESS(f"Created {user.role} user {user.email}"))
