from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction
from faker import Faker

User = get_user_model()

DEMO_PASSWORD = "Password123!"

# (tier, star level) for the agent chain, top supervisor first
AGENT_CHAIN = [
    ('4-star', 4),
    ('2-star', 2),
    ('1-star', 1),
    ('rookie', 0),
]


class Command(BaseCommand):
    help = "Populate the database with demo staff and an agent hierarchy.\n\n" \
           "• Ensures one BACKOFFICE and one FINANCE user.\n" \
           "• Creates a four-level agent chain (4-star down to rookie) per team.\n" \
           "All demo users share the password Password123!. " \
           "The command is idempotent – re-running won't create duplicates."

    def add_arguments(self, parser):
        parser.add_argument(
            '--teams',
            type=int,
            default=2,
            help='Number of agent chains to create (default: 2)',
        )

    def handle(self, *args, **options):
        faker = Faker()
        Faker.seed(4321)
        self.stdout.write(self.style.NOTICE("Seeding demo data…"))

        with transaction.atomic():
            self._ensure_user('backoffice@maestro.local', User.ROLE_BACKOFFICE, 'Morgan', 'Reviewer')
            self._ensure_user('finance@maestro.local', User.ROLE_FINANCE, 'Casey', 'Ledger')

            for team in range(1, options['teams'] + 1):
                supervisor = None
                for depth, (tier, level) in enumerate(AGENT_CHAIN, start=1):
                    supervisor = self._ensure_user(
                        f'agent{team}.{depth}@maestro.local',
                        User.ROLE_AGENT,
                        faker.first_name(),
                        faker.last_name(),
                        supervisor=supervisor,
                        tier=tier,
                        star_level=level,
                        phone=faker.numerify('(###) ###-####'),
                    )

        self.stdout.write(self.style.SUCCESS(f"Demo users ready (password: {DEMO_PASSWORD})"))

    def _ensure_user(self, email, role, first_name, last_name, **extra):
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                'username': email,
                'first_name': first_name,
                'last_name': last_name,
                'role': role,
                'is_active': True,
                **extra,
            },
        )
        if created:
            user.set_password(DEMO_PASSWORD)
            user.save(update_fields=['password'])
            self.stdout.write(f"  created {role.lower()} {email}")
        return user
