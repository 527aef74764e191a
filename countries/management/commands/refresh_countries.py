from dataclasses import replace

from django.core.management.base import BaseCommand, CommandError

from countries.exceptions import ExternalFetchError, PersistenceError
from countries.services import RefreshConfig, RefreshPipeline


class Command(BaseCommand):
    help = "Fetch countries and exchange rates, upsert them and regenerate the summary image."

    def add_arguments(self, parser):
        parser.add_argument("--timeout", type=float, default=None,
                            help="Per-request timeout for the external APIs, in seconds.")

    def handle(self, *args, **options):
        config = RefreshConfig.from_settings()
        if options["timeout"] is not None:
            config = replace(config, timeout=options["timeout"])

        try:
            result = RefreshPipeline(config).refresh()
        except (ExternalFetchError, PersistenceError) as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {result.processed} countries "
            f"({result.inserted} new, {result.updated} updated, {len(result.skipped)} skipped)"
        ))
        if not result.summary.ok:
            self.stderr.write(f"Summary image not updated: {result.summary.error}")
