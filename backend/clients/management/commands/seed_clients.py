from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction
from faker import Faker
import random

from clients.models import Client
from services.intake_service import IntakeService
from services.status_transition_service import StatusTransitionService

User = get_user_model()

# Status paths walked for seeded clients; each entry is a valid transition chain
STATUS_PATHS = [
    [],
    [Client.STATUS_PHONE_ISSUED],
    [Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION],
    [Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION, Client.STATUS_NEEDS_MORE_INFO],
    [Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION, Client.STATUS_READY_FOR_APPROVAL],
    [Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION, Client.STATUS_READY_FOR_APPROVAL, Client.STATUS_APPROVED],
    [Client.STATUS_REJECTED],
]


class Command(BaseCommand):
    help = "Seed the database with sample clients spread across the intake pipeline.\n\n" \
           "• Creates clients for existing active agents.\n" \
           "• Walks each client through a random status path so to-dos, events and bonus pools exist.\n" \
           "Run seed_demo_data first to create agents and an admin."

    def add_arguments(self, parser):
        parser.add_argument(
            '--count',
            type=int,
            default=25,
            help='Number of clients to create (default: 25)',
        )

    def handle(self, *args, **options):
        count = options['count']
        faker = Faker()

        agents = list(User.objects.filter(role=User.ROLE_AGENT, is_active=True))
        if not agents:
            self.stdout.write(self.style.ERROR("No active agents found. Please run seed_demo_data first."))
            return

        reviewer = User.objects.filter(role=User.ROLE_ADMIN, is_active=True).first()
        if reviewer is None:
            self.stdout.write(self.style.ERROR("No active admin found. Please run create_admin first."))
            return

        self.stdout.write(self.style.NOTICE(f"Seeding {count} client records..."))
        transitions = StatusTransitionService(reviewer)
        created = 0

        with transaction.atomic():
            for _ in range(count):
                agent = random.choice(agents)
                result = IntakeService(agent).create_client({
                    'first_name': faker.first_name(),
                    'last_name': faker.last_name(),
                    'phone': faker.numerify('(###) ###-####'),
                    'email': faker.unique.email(),
                })
                if not result.success:
                    self.stdout.write(self.style.WARNING(f"Skipped client: {result.error}"))
                    continue

                client = result.data
                for new_status in random.choice(STATUS_PATHS):
                    step = transitions.transition_status(client.id, new_status, reason="Seeded")
                    if not step.success:
                        self.stdout.write(self.style.WARNING(f"{client.name}: {step.error}"))
                        break
                created += 1

        self.stdout.write(self.style.SUCCESS(f"Created {created} client(s)."))
