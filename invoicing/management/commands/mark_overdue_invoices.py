"""
Management command to flag pending invoices past their due date as overdue.
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from invoicing import services


class Command(BaseCommand):
    help = 'Mark pending invoices whose due date has passed as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            default=None,
            help='Reference day as YYYY-MM-DD (default: today)'
        )

    def handle(self, *args, **options):
        today = None
        if options['date'] is not None:
            try:
                today = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(
                    f'Invalid --date "{options["date"]}", expected YYYY-MM-DD'
                ) from None

        updated = services.mark_overdue_invoices(today=today)
        self.stdout.write(
            self.style.SUCCESS(f'Marked {updated} invoice(s) as overdue')
        )
