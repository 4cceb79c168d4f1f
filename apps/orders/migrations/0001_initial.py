# Generated manually for orders app

from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('total_amount', models.PositiveIntegerField()),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('authorized', 'Authorized'), ('pending_cod', 'Pending (cash on delivery)')], db_index=True, default='pending', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('payment_id', models.CharField(blank=True, max_length=100)),
                ('payment_amount', models.PositiveIntegerField(blank=True, null=True)),
                ('payment_currency', models.CharField(default='JPY', max_length=3)),
                ('payment_completed_at', models.DateTimeField(blank=True, null=True)),
                ('customer_email', models.EmailField(blank=True, max_length=254)),
                ('customer_name', models.CharField(blank=True, max_length=200)),
                ('customer_phone', models.CharField(blank=True, max_length=50)),
                ('shipping_address', models.TextField(blank=True)),
                ('order_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='catalog.product')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['payment_status', 'created_at'], name='orders_status_created_idx')],
            },
        ),
    ]
