import requests
from django.core.management.base import BaseCommand, CommandError

from shopstock.tpos.exceptions import TPOSError
from shopstock.tpos.product_sync import sync_all_products, sync_all_variants, upsert_product_from_tpos


class Command(BaseCommand):
    help = 'Refresh linked products (or variants with --variants) from TPOS, or replace one product family with --code'

    def add_arguments(self, parser):
        parser.add_argument(
            '--code',
            type=str,
            help='Upsert only this product code from TPOS',
        )
        parser.add_argument(
            '--variants',
            action='store_true',
            help='Refresh prices and stock of every linked variant row',
        )

    def handle(self, *args, **options):
        code = options.get('code')

        try:
            if code:
                result = upsert_product_from_tpos(code)
                if not result['success']:
                    raise CommandError(result['message'])
                self.stdout.write(self.style.SUCCESS(
                    f"{code}: {result['message']} (product id {result['product_id']})"
                ))
                return

            progress = sync_all_variants() if options.get('variants') else sync_all_products()
        except (TPOSError, requests.RequestException) as e:
            raise CommandError(str(e))

        for line in reversed(progress['logs']):
            self.stdout.write(f'  {line}')
        style = self.style.SUCCESS if not progress['failed'] else self.style.WARNING
        self.stdout.write(style(
            f"\nCompleted: {progress['success']} synced, {progress['failed']} failed of {progress['total']}"
        ))
