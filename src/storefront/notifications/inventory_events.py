"""Staff alert when a product runs low."""

from protean.utils.mixins import handle

from storefront import settings
from storefront.catalogue.events import LowStockDetected
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.notifications.dispatch import send
from storefront.notifications.port import NotificationKind


@storefront.event_handler(part_of=Product)
class LowStockAlertHandler:
    @handle(LowStockDetected)
    def on_low_stock(self, event: LowStockDetected) -> None:
        send(
            NotificationKind.LOW_STOCK_ALERT,
            settings.staff_alert_email(),
            {"sku": event.sku, "current_stock": event.current_stock, "threshold": event.threshold},
        )
