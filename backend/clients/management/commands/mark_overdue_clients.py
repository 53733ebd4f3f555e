from django.core.management.base import BaseCommand, CommandError

from services.overdue_service import OverdueService


class Command(BaseCommand):
    help = "Move IN_EXECUTION clients whose deadline has passed to EXECUTION_DELAYED."

    def handle(self, *args, **options):
        result = OverdueService().check_overdue_clients()
        if not result.success:
            raise CommandError(result.error)

        marked = result.data['marked']
        if marked:
            ids = ', '.join(str(client_id) for client_id in result.data['client_ids'])
            self.stdout.write(self.style.SUCCESS(f"Marked {marked} client(s) overdue: {ids}"))
        else:
            self.stdout.write(self.style.NOTICE("No overdue clients found."))
