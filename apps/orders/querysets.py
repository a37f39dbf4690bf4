from django.db.models import Q

ORDERING_FIELDS = {
    "created_at",
    "order_number",
    "customer_name",
    "total_amount",
    "status",
    "payment_status",
    "scheduled_date",
    "seller_shipped_date",
    "delivered_date",
}
DEFAULT_ORDERING = ("-created_at", "-id")


def created_between(queryset, date_from=None, date_to=None):
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)
    return queryset


def filter_orders(queryset, filters):
    statuses = filters.get("status")
    if statuses:
        queryset = queryset.filter(status__in=statuses)

    payment_statuses = filters.get("payment_status")
    if payment_statuses:
        queryset = queryset.filter(payment_status__in=payment_statuses)

    queryset = created_between(queryset, filters.get("date_from"), filters.get("date_to"))

    query = (filters.get("q") or "").strip()
    if query:
        queryset = queryset.filter(
            Q(order_number__icontains=query)
            | Q(customer_name__icontains=query)
            | Q(customer_phone__icontains=query)
            | Q(depositor_name__icontains=query)
            | Q(recipient_name__icontains=query)
            | Q(address1__icontains=query)
            | Q(recipient_address1__icontains=query)
        )

    remote = filters.get("remote")
    if remote is not None:
        queryset = queryset.filter(is_remote_area=remote)

    ordering = filters.get("ordering")
    if ordering and ordering.lstrip("-") in ORDERING_FIELDS:
        return queryset.order_by(ordering, "-id")
    return queryset.order_by(*DEFAULT_ORDERING)
