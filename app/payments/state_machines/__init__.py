"""
State machine enums for payment models.
"""

from payments.state_machines.states import PaymentStatus, WebhookEventStatus

__all__ = [
    "PaymentStatus",
    "WebhookEventStatus",
]
