"""Mensageria multi-plataforma: contrato de adapter, router e adapter SMS.

Uso típico:
    from textarr.messaging import MessageRouter, SmsAdapter
"""

from textarr.domain.models import MessageResponse
from textarr.messaging.adapter import MessagingAdapter
from textarr.messaging.router import SERVICE_UNAVAILABLE, MessageHandler, MessageRouter
from textarr.messaging.sms import SmsAdapter

__all__ = [
    "MessageResponse",
    "MessagingAdapter",
    "MessageHandler",
    "MessageRouter",
    "SERVICE_UNAVAILABLE",
    "SmsAdapter",
]
