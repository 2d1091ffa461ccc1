from django.core.management.base import BaseCommand, CommandError

from core.models import Treatment
from core.services.treatments import ledger_mismatches


class Command(BaseCommand):
    help = "Check that every treatment's funded amount and status match its donations. Reports only."

    def handle(self, *args, **options):
        problems = ledger_mismatches()
        for p in problems:
            self.stderr.write(
                f"treatment {p['treatment_id']}: funded_amount={p['funded_amount']} "
                f"donations={p['donated']} status={p['status']}"
            )
        if problems:
            raise CommandError(f"{len(problems)} treatment(s) out of balance")
        self.stdout.write(self.style.SUCCESS(f"Ledger balanced for {Treatment.objects.count()} treatment(s)."))
