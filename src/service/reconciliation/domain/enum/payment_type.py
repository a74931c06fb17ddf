from enum import StrEnum


class PaymentType(StrEnum):
    """Payment backend a merchant settles through; drives provider dispatch."""

    PAYPAL = 'paypal'
    STRIPE = 'stripe'
