import structlog

from storefront.notifications import get_notifier
from storefront.notifications.port import NotificationKind

logger = structlog.get_logger(__name__)


def send(kind: NotificationKind, recipient: str | None, context: dict) -> None:
    """Deliver a notification; failures are logged and never reach the caller."""
    if not recipient:
        logger.info("notification_skipped", kind=kind.value, reason="no recipient")
        return

    try:
        get_notifier().notify(kind, recipient, context)
    except Exception as exc:
        logger.warning("notification_failed", kind=kind.value, recipient=recipient, error=str(exc))
        return

    logger.info("notification_sent", kind=kind.value, recipient=recipient)
