import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(editable=False, max_length=20, unique=True)),
                ("customer_name", models.CharField(max_length=100)),
                ("customer_phone", models.CharField(max_length=30)),
                ("depositor_name", models.CharField(blank=True, max_length=100)),
                ("zip_code", models.CharField(blank=True, max_length=10)),
                ("address1", models.CharField(max_length=255)),
                ("address2", models.CharField(blank=True, max_length=255)),
                ("special_requests", models.TextField(blank=True)),
                ("recipient_name", models.CharField(blank=True, max_length=100)),
                ("recipient_phone", models.CharField(blank=True, max_length=30)),
                ("recipient_zip_code", models.CharField(blank=True, max_length=10)),
                ("recipient_address1", models.CharField(blank=True, max_length=255)),
                ("recipient_address2", models.CharField(blank=True, max_length=255)),
                ("small_box_quantity", models.PositiveIntegerField(default=0)),
                ("large_box_quantity", models.PositiveIntegerField(default=0)),
                ("wrapping_quantity", models.PositiveIntegerField(default=0)),
                ("small_box_price", models.PositiveIntegerField(default=0)),
                ("large_box_price", models.PositiveIntegerField(default=0)),
                ("wrapping_price", models.PositiveIntegerField(default=0)),
                ("small_box_cost", models.PositiveIntegerField(default=0)),
                ("large_box_cost", models.PositiveIntegerField(default=0)),
                ("wrapping_cost", models.PositiveIntegerField(default=0)),
                ("shipping_fee", models.PositiveIntegerField(default=0)),
                ("total_amount", models.PositiveIntegerField()),
                ("is_remote_area", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "주문접수"),
                            ("scheduled", "발송예약"),
                            ("seller_shipped", "발송완료"),
                            ("delivered", "배송완료"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                ("seller_shipped_date", models.DateTimeField(blank=True, null=True)),
                ("delivered_date", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "입금대기"),
                            ("confirmed", "입금완료"),
                            ("partial", "부분결제"),
                            ("refunded", "환불"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("actual_paid_amount", models.PositiveIntegerField(blank=True, null=True)),
                ("discount_amount", models.PositiveIntegerField(blank=True, null=True)),
                ("discount_reason", models.CharField(blank=True, max_length=255)),
                ("net_profit", models.IntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["deleted_at", "created_at"], name="order_deleted_created_idx"),
                    models.Index(fields=["status"], name="order_status_idx"),
                    models.Index(fields=["payment_status"], name="order_payment_status_idx"),
                    models.Index(fields=["customer_phone"], name="order_customer_phone_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SmsNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone_number", models.CharField(max_length=30)),
                ("message", models.TextField()),
                ("sent_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sms_notifications",
                        to="orders.order",
                    ),
                ),
                (
                    "sent_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-sent_at", "-id"],
            },
        ),
    ]
