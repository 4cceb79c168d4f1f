# Generated manually for payments app

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_method', models.CharField(choices=[('paypay', 'PayPay'), ('cod', 'Cash on delivery')], default='paypay', max_length=30)),
                ('payment_provider_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('amount', models.PositiveIntegerField()),
                ('currency', models.CharField(default='JPY', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('authorized', 'Authorized'), ('pending_cod', 'Pending (cash on delivery)')], default='pending', max_length=20)),
                ('payment_url', models.URLField(blank=True, max_length=500)),
                ('deeplink', models.CharField(blank=True, max_length=500)),
                ('consecutive_api_errors', models.PositiveIntegerField(default=0)),
                ('last_api_check', models.DateTimeField(blank=True, null=True)),
                ('last_api_error', models.CharField(blank=True, max_length=100)),
                ('last_api_error_at', models.DateTimeField(blank=True, null=True)),
                ('last_gateway_status', models.CharField(blank=True, max_length=30)),
                ('provider_response', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='orders.order')),
            ],
            options={
                'db_table': 'payments',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['order', 'created_at'], name='payments_order_created_idx')],
            },
        ),
    ]
