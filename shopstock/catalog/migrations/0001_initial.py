# Generated manually

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_code', models.CharField(db_index=True, max_length=100, unique=True)),
                ('product_name', models.CharField(max_length=500)),
                ('variant', models.CharField(blank=True, max_length=500, null=True)),
                ('base_product_code', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('selling_price', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('purchase_price', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('stock_quantity', models.IntegerField(default=0)),
                ('virtual_available', models.IntegerField(default=0)),
                ('unit', models.CharField(default='Cái', max_length=50)),
                ('category', models.CharField(blank=True, max_length=200, null=True)),
                ('barcode', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('supplier_name', models.CharField(blank=True, db_index=True, max_length=200, null=True)),
                ('product_images', models.JSONField(blank=True, default=list)),
                ('price_images', models.JSONField(blank=True, default=list)),
                ('tpos_product_id', models.BigIntegerField(blank=True, db_index=True, null=True)),
                ('productid_bienthe', models.BigIntegerField(blank=True, null=True)),
                ('tpos_image_url', models.URLField(blank=True, max_length=1000, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ProductAttribute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('display_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'product_attributes',
                'ordering': ['display_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ProductAttributeValue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('value', models.CharField(max_length=200)),
                ('code', models.CharField(blank=True, max_length=100, null=True)),
                ('display_order', models.IntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('tpos_id', models.BigIntegerField(blank=True, null=True)),
                ('tpos_attribute_id', models.BigIntegerField(blank=True, null=True)),
                ('sequence', models.IntegerField(blank=True, null=True)),
                ('name_get', models.CharField(blank=True, max_length=300, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('attribute', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='values', to='catalog.productattribute')),
            ],
            options={
                'db_table': 'product_attribute_values',
                'ordering': ['display_order', 'value'],
            },
        ),
        migrations.AddConstraint(
            model_name='productattributevalue',
            constraint=models.UniqueConstraint(fields=('attribute', 'value'), name='uniq_attribute_value'),
        ),
    ]
