from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('payments', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='paymentrecord',
            name='payment_method',
            field=models.CharField(choices=[('paypay', 'PayPay'), ('stripe', 'Card (Stripe)'), ('cod', 'Cash on delivery')], default='paypay', max_length=30),
        ),
    ]
