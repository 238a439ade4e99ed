from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="escrowpayment",
            name="gateway_charge_id",
            field=models.CharField(
                blank=True,
                help_text="Charge created when the hold was captured (ch_xxx)",
                max_length=255,
                null=True,
            ),
        ),
        migrations.AddField(
            model_name="escrowpayment",
            name="hold_captured_at",
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
