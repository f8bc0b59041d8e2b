from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

from projects import applications, ledger, lifecycle, settlement
from projects.models import Project, ProjectUpdate

User = get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with sample clients, professionals and projects at every lifecycle stage"

    def _user(self, username, role, **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", "role": role, **extra},
        )
        if created:
            user.set_password("password")
            user.save()
        return user

    def handle(self, *args, **options):
        self.stdout.write("🌱 Seeding data...")

        # 1. Ensure Users
        admin = self._user("admin", User.ROLE_ADMIN, is_staff=True, is_superuser=True)
        carol = self._user("carol", User.ROLE_CLIENT, location="Austin, TX")
        dan = self._user("dan", User.ROLE_CLIENT, location="Denver, CO")
        pat = self._user(
            "pat", User.ROLE_PROFESSIONAL,
            skills=["plumbing", "drywall"], hourly_rate=Decimal("65.00"), years_experience=8,
        )
        sam = self._user(
            "sam", User.ROLE_PROFESSIONAL,
            skills=["electrical", "lighting"], hourly_rate=Decimal("80.00"), years_experience=12,
        )
        self.stdout.write(f"Users ready (admin id={admin.id})")

        if Project.objects.filter(client__in=[carol, dan]).exists():
            self.stdout.write("Projects already seeded, skipping.")
            return

        # 2. Open project with competing bids
        kitchen = lifecycle.create_project(
            carol,
            title="Replace kitchen sink and faucet",
            description="Old cast iron sink, needs removal and new undermount install.",
            budget=Decimal("600.00"),
            category="plumbing",
            location="Austin, TX",
            required_skills=["plumbing"],
            requirements=["Bring own tools", "Haul away old sink"],
            timeline="1 week",
            urgency=Project.URGENCY_NORMAL,
        )
        applications.submit_application(kitchen.id, pat, bid=Decimal("500.00"), proposal="Can start Monday.")
        applications.submit_application(kitchen.id, sam, proposal="Available this weekend.")
        self.stdout.write(f"Created open project: {kitchen.title}")

        # 3. Project in progress with a ledger
        lighting = lifecycle.create_project(
            dan,
            title="Install recessed lighting in living room",
            budget=Decimal("1200.00"),
            category="electrical",
            location="Denver, CO",
            required_skills=["electrical"],
            urgency=Project.URGENCY_HIGH,
        )
        bid = applications.submit_application(lighting.id, sam, bid=Decimal("1100.00"))
        applications.accept_application(bid.id, dan)
        ledger.append_update(
            lighting.id, sam, ProjectUpdate.TYPE_ON_MY_WAY,
            message="Heading over now",
        )
        ledger.append_update(
            lighting.id, sam, ProjectUpdate.TYPE_CHECK_IN,
            metadata={"checked_by": "sam", "geolocation": {"latitude": 39.7392, "longitude": -104.9903}},
        )
        ledger.append_update(
            lighting.id, sam, ProjectUpdate.TYPE_EXPENSE_SUBMITTED,
            message="Six LED cans", metadata={"amount": "138.50", "description": "Fixtures"},
        )
        self.stdout.write(f"Created in-progress project: {lighting.title}")

        # 4. Finished, paid and reviewed project
        drywall = lifecycle.create_project(
            carol,
            title="Patch drywall in hallway",
            budget=Decimal("300.00"),
            category="drywall",
            location="Austin, TX",
        )
        bid = applications.submit_application(drywall.id, pat)
        applications.accept_application(bid.id, carol)
        ledger.append_update(drywall.id, pat, ProjectUpdate.TYPE_CHECK_IN)
        ledger.append_update(
            drywall.id, pat, ProjectUpdate.TYPE_COMPLETION_NOTE,
            message="Job completed, ready for review",
        )
        lifecycle.mark_complete(drywall.id, pat)
        payment = settlement.create_payment(drywall.id, carol)
        settlement.mark_payment_complete(payment.id, carol, note="Paid by check")
        settlement.submit_review(drywall.id, carol, 5, "Clean work, on time.")
        self.stdout.write(f"Created archived project: {drywall.title}")

        self.stdout.write("✅ Seeding Complete!")
