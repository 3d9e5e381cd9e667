"""
Django management command to check StockLevel synchronization with the transaction ledger
and show the recent stock operations from the audit log
"""
import json
from collections import defaultdict
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction as db_transaction
from django.db.models import Sum

from flowstore.core.cache_signals import suspend_cache_signals
from flowstore.core.cache_utils import invalidate_inventory_cache
from flowstore.core.models import AuditLog
from flowstore.core.utils import create_audit_log, QUANTITY_TOLERANCE
from flowstore.inventory.models import StockLevel
from flowstore.inventory.stock import signed_quantity, STOCK_MOVING_TYPES, STOCK_EFFECTIVE_STATUSES
from flowstore.transactions.models import TransactionLine

STOCK_ACTIONS = ['stock_adjust', 'stock_transfer', 'stock_sync', 'reception_create', 'reception_cancel',
                 'transaction_create', 'transaction_cancel']


class Command(BaseCommand):
    help = 'Check StockLevel rows against the quantities implied by the transaction ledger'

    def add_arguments(self, parser):
        parser.add_argument(
            '--variant-id',
            type=int,
            help='Check specific variant ID only',
        )
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all stock rows, not just discrepancies',
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Overwrite drifted StockLevel rows with the ledger quantity',
        )
        parser.add_argument(
            '--audit-limit',
            type=int,
            default=20,
            help='Number of recent audit logs to show (default: 20)',
        )

    def ledger_quantities(self, variant_id=None):
        """(variant_id, storage_id) -> quantity implied by the ledger"""
        lines = TransactionLine.objects.filter(
            variant__isnull=False,
            variant__track_inventory=True,
            transaction__storage__isnull=False,
            transaction__status__in=STOCK_EFFECTIVE_STATUSES,
            transaction__transaction_type__in=STOCK_MOVING_TYPES,
        )
        if variant_id:
            lines = lines.filter(variant_id=variant_id)

        expected = defaultdict(Decimal)
        grouped = lines.values('variant_id', 'transaction__storage_id', 'transaction__transaction_type').annotate(
            total=Sum('quantity_in_base')
        )
        for row in grouped:
            key = (row['variant_id'], row['transaction__storage_id'])
            expected[key] += signed_quantity(row['transaction__transaction_type'], row['total'] or Decimal('0'))
        return expected

    def handle(self, *args, **options):
        variant_id = options.get('variant_id')
        show_all = options.get('show_all', False)
        fix = options.get('fix', False)
        audit_limit = options.get('audit_limit', 20)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("STOCK LEVEL vs LEDGER SYNCHRONIZATION ANALYSIS"))
        self.stdout.write("=" * 80)

        expected = self.ledger_quantities(variant_id)
        levels = StockLevel.objects.select_related('variant', 'storage')
        if variant_id:
            levels = levels.filter(variant_id=variant_id)
        stored = {(level.variant_id, level.storage_id): level for level in levels}

        discrepancies = []
        for key in sorted(set(expected) | set(stored)):
            level = stored.get(key)
            stored_qty = level.quantity if level else Decimal('0')
            ledger_qty = expected.get(key, Decimal('0'))
            difference = stored_qty - ledger_qty
            drifted = abs(difference) > QUANTITY_TOLERANCE
            if drifted:
                discrepancies.append((key, stored_qty, ledger_qty, difference))
            if show_all or drifted:
                label = f"{level.variant.sku} @ {level.storage.name}" if level else f"variant {key[0]} @ storage {key[1]}"
                style = self.style.WARNING if drifted else self.style.SUCCESS
                self.stdout.write(style(f"  {label}: stored {stored_qty}, ledger {ledger_qty}, diff {difference:+}"))

        self.stdout.write("")
        self.stdout.write(f"Total rows with discrepancies: {len(discrepancies)}")
        if not discrepancies:
            self.stdout.write(self.style.SUCCESS("✓ No discrepancies found!"))
        elif fix:
            self.repair(discrepancies)
        else:
            self.stdout.write(self.style.WARNING("Run with --fix to overwrite the stored quantities"))

        self.stdout.write("")
        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("RECENT AUDIT LOGS - STOCK OPERATIONS"))
        self.stdout.write("=" * 80)
        recent_logs = AuditLog.objects.filter(action__in=STOCK_ACTIONS).order_by('-created_at')[:audit_limit]
        for log in recent_logs:
            self.stdout.write(f"[{log.created_at.strftime('%Y-%m-%d %H:%M:%S')}] {log.action}")
            self.stdout.write(f"  Model: {log.model_name}, Object: {log.object_name or log.object_id}")
            if log.sku:
                self.stdout.write(f"  SKU: {log.sku}")
            if log.changes:
                self.stdout.write(f"  Changes: {json.dumps(log.changes, indent=4)}")
        if not recent_logs:
            self.stdout.write("  No stock-related audit logs found.")

    def repair(self, discrepancies):
        with suspend_cache_signals(), db_transaction.atomic():
            for (variant_id, storage_id), stored_qty, ledger_qty, difference in discrepancies:
                level, _ = StockLevel.objects.select_for_update().get_or_create(variant_id=variant_id, storage_id=storage_id)
                level.quantity = ledger_qty
                level.save(update_fields=['quantity', 'updated_at'])
                create_audit_log(action='stock_sync', model_name='StockLevel', object_id=level.id,
                                 object_name=f"variant {variant_id} @ storage {storage_id}",
                                 changes={'old_quantity': str(stored_qty), 'new_quantity': str(ledger_qty)})
        invalidate_inventory_cache()
        self.stdout.write(self.style.SUCCESS(f"✓ Repaired {len(discrepancies)} stock rows"))
