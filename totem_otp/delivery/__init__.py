"""
OTP Delivery Agents
===================
Bundled implementations of the delivery capability.
"""

from .webhook import WebhookDeliveryAgent, WebhookPayload, default_body_builder

__all__ = [
    "WebhookDeliveryAgent",
    "WebhookPayload",
    "default_body_builder",
]
