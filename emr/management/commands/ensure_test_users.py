from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from emr.models import User, UserRole

TEST_SET = [
    ("admin1", "admin"),
    ("reception1", "reception"),
    ("clinician1", "clinician"),
    ("billing1", "billing"),
    ("manager1", "manager"),
    ("patient1", "patient"),
]


class Command(BaseCommand):
    help = "Ensure one test user per role exists with a known password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="Clinic#2024", help="password to set on every test user")

    def handle(self, *args, **opts):
        password = opts["password"]
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"password": make_password(password), "is_active": True},
            )
            if not created:
                # reset password and reactivate
                u.password = make_password(password)
                u.is_active = True
                u.save(update_fields=["password", "is_active"])
            UserRole.objects.get_or_create(user=u, role=role)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
