"""Notifier port: fire-and-forget customer and staff notifications."""

from abc import ABC, abstractmethod
from enum import Enum


class NotificationKind(Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    PAYMENT_RECEIVED = "payment_received"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_REFUNDED = "order_refunded"
    LOW_STOCK_ALERT = "low_stock_alert"


class NotifierPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def notify(self, kind: NotificationKind, recipient: str, context: dict) -> dict:
        """Send a notification.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
