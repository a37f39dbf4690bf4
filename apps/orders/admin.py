from django.contrib import admin

from apps.orders.models import Order, SmsNotification


class SmsNotificationInline(admin.TabularInline):
    model = SmsNotification
    extra = 0
    readonly_fields = ("phone_number", "message", "sent_by", "sent_at")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "customer_name",
        "customer_phone",
        "total_amount",
        "status",
        "payment_status",
        "is_remote_area",
        "created_at",
        "deleted_at",
    )
    list_filter = ("status", "payment_status", "is_remote_area")
    search_fields = ("order_number", "customer_name", "customer_phone", "depositor_name")
    readonly_fields = (
        "order_number",
        "small_box_quantity",
        "large_box_quantity",
        "wrapping_quantity",
        "small_box_price",
        "large_box_price",
        "wrapping_price",
        "small_box_cost",
        "large_box_cost",
        "wrapping_cost",
        "shipping_fee",
        "total_amount",
        "created_at",
        "updated_at",
    )
    inlines = [SmsNotificationInline]


@admin.register(SmsNotification)
class SmsNotificationAdmin(admin.ModelAdmin):
    list_display = ("order", "phone_number", "sent_by", "sent_at")
    search_fields = ("phone_number", "message")
