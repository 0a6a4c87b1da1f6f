"""Notification delivery over email, WhatsApp and the realtime channel."""

from .channels import DeliveryError, EmailSender, WhatsAppSender
from .dispatcher import NotificationDispatcher, Recipient
from .ports import NotifierPort, RealtimePublisher, notify_safely

__all__ = [
    "DeliveryError",
    "EmailSender",
    "NotificationDispatcher",
    "NotifierPort",
    "RealtimePublisher",
    "Recipient",
    "WhatsAppSender",
    "notify_safely",
]
