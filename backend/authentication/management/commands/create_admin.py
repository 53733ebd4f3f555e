from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
import environ

User = get_user_model()

env = environ.Env()


class Command(BaseCommand):
    help = 'Creates the first ADMIN user from ADMIN_EMAIL and ADMIN_PASS if no admin exists.'

    def add_arguments(self, parser):
        parser.add_argument('--email', help='Overrides ADMIN_EMAIL')
        parser.add_argument('--password', help='Overrides ADMIN_PASS')

    def handle(self, *args, **options):
        if User.objects.filter(role=User.ROLE_ADMIN).exists():
            self.stdout.write(self.style.WARNING('An admin user already exists.'))
            return

        email = options.get('email') or env('ADMIN_EMAIL', default=None)
        password = options.get('password') or env('ADMIN_PASS', default=None)

        if not all([email, password]):
            self.stderr.write(self.style.ERROR(
                'Missing credentials. Provide ADMIN_EMAIL and ADMIN_PASS in .env, '
                'environment variables, or --email/--password.'
            ))
            return

        user = User.objects.create_superuser(email=email, password=password, first_name='System', last_name='Admin')
        self.stdout.write(self.style.SUCCESS(f'Successfully created admin user: {user.email}'))
