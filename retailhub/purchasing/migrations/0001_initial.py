# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


RETURN_HANDLING = [('REDUCE_AP', 'Reduce amount payable'), ('REFUND', 'Refund to account')]


def line_fields():
    return [
        ('name', models.CharField(max_length=200)),
        ('sku', models.CharField(blank=True, max_length=100, null=True)),
        ('category', models.CharField(blank=True, max_length=100, null=True)),
        ('description', models.TextField(blank=True, null=True)),
        ('color', models.CharField(blank=True, max_length=50, null=True)),
        ('size', models.CharField(blank=True, max_length=20, null=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('parties', '0001_initial'),
        ('catalog', '0001_initial'),
        ('accounting', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PurchaseInvoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(max_length=100)),
                ('supplier_name', models.CharField(max_length=200)),
                ('invoice_date', models.DateField()),
                ('purchase_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('return_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('advance_amount_used', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('partial', 'Partially Paid'), ('paid', 'Fully Paid')], default='unpaid', max_length=10)),
                ('return_handling_method', models.CharField(blank=True, choices=RETURN_HANDLING, max_length=20, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_invoices', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_invoices', to='parties.supplier')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='purchase_invoices', to='core.tenant')),
            ],
            options={
                'db_table': 'purchase_invoices',
                'ordering': ['-invoice_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'is_deleted', '-invoice_date'], name='idx_pinv_tenant_date'),
                    models.Index(fields=['supplier', 'is_deleted'], name='idx_pinv_supplier'),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name='purchaseinvoice',
            constraint=models.UniqueConstraint(condition=models.Q(('is_deleted', False)), fields=('tenant', 'invoice_number'), name='unique_live_invoice_number_per_tenant'),
        ),
        migrations.CreateModel(
            name='PurchaseItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                *line_fields(),
                ('quantity', models.PositiveIntegerField()),
                ('purchase_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.purchaseinvoice')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_items', to='catalog.product')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_items', to='catalog.productvariant')),
            ],
            options={
                'db_table': 'purchase_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseReturn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('return_number', models.CharField(max_length=100)),
                ('handling_method', models.CharField(choices=RETURN_HANDLING, max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='returns', to='purchasing.purchaseinvoice')),
                ('refund_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_returns', to='accounting.account')),
            ],
            options={
                'db_table': 'purchase_returns',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseReturnItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                *line_fields(),
                ('reason', models.CharField(blank=True, max_length=255, null=True)),
                ('quantity', models.PositiveIntegerField()),
                ('purchase_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('purchase_return', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchasing.purchasereturn')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_return_items', to='catalog.product')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_return_items', to='catalog.productvariant')),
            ],
            options={
                'db_table': 'purchase_return_items',
                'ordering': ['id'],
            },
        ),
    ]
