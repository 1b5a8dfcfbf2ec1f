# Generated manually

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('purchasing', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='GoodsReceiving',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('receiving_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('total_items_expected', models.IntegerField(default=0)),
                ('total_items_received', models.IntegerField(default=0)),
                ('has_discrepancy', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='receivings', to='purchasing.purchaseorder')),
                ('received_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='goods_receivings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'goods_receiving',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='GoodsReceivingItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_code', models.CharField(max_length=100)),
                ('product_name', models.CharField(max_length=500)),
                ('variant', models.CharField(blank=True, max_length=500, null=True)),
                ('expected_quantity', models.IntegerField(default=0)),
                ('received_quantity', models.IntegerField(default=0)),
                ('discrepancy_type', models.CharField(choices=[('match', 'Match'), ('shortage', 'Shortage'), ('overage', 'Overage')], default='match', max_length=20)),
                ('discrepancy_quantity', models.IntegerField(default=0)),
                ('product_condition', models.CharField(choices=[('good', 'Good'), ('damaged', 'Damaged'), ('wrong_item', 'Wrong Item')], default='good', max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('goods_receiving', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='receiving.goodsreceiving')),
                ('purchase_order_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='receiving_items', to='purchasing.purchaseorderitem')),
            ],
            options={
                'db_table': 'goods_receiving_items',
                'ordering': ['id'],
            },
        ),
    ]
