"""
Management command to create upcoming sessions from auto-scheduled templates.

Run it when the application starts and periodically (e.g. daily via cron);
a missed run heals itself on the next one.
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from scheduling import services


class Command(BaseCommand):
    help = 'Create upcoming sessions from auto-scheduled recurrence templates'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Look-ahead window in days (default: SCHEDULE_ADVANCE_DAYS)'
        )
        parser.add_argument(
            '--date',
            default=None,
            help='Reference day as YYYY-MM-DD (default: today)'
        )
        parser.add_argument(
            '--weekly-only',
            action='store_true',
            help='Run the weekly pass instead of the full catch-up sweep'
        )

    def handle(self, *args, **options):
        today = self._parse_date(options['date'])
        days_ahead = options['days']
        if days_ahead is not None and days_ahead < 0:
            raise CommandError('--days must not be negative')

        if options['weekly_only']:
            self.stdout.write('Running weekly auto-schedule pass...')
            result = services.run_weekly_pass(today=today, days_ahead=days_ahead)
        else:
            self.stdout.write('Running auto-schedule catch-up sweep...')
            result = services.catch_up_all(today=today, days_ahead=days_ahead)

        for error in result.errors:
            self.stderr.write(
                self.style.WARNING(f'Template {error.template_id} failed: {error.message}')
            )

        self.stdout.write(
            self.style.SUCCESS(
                f'Successfully scheduled {result.created_count} new session(s)'
            )
        )

    def _parse_date(self, value):
        if value is None:
            return None
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise CommandError(f'Invalid --date "{value}", expected YYYY-MM-DD') from None
