from rest_framework.throttling import AnonRateThrottle


class PublicOrderAnonThrottle(AnonRateThrottle):
    scope = "public_orders"
