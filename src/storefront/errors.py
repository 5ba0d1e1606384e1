"""Storefront error taxonomy.

Validation and not-found failures use Protean's own ``ValidationError`` and
``ObjectNotFoundError``. The classes here cover the remaining cases and carry
the same ``messages`` shape (``{field: [message, ...]}``) so the API can
render every failure uniformly.
"""


class StorefrontError(Exception):
    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


class ConflictError(StorefrontError):
    """The operation is valid but clashes with the current state."""


class InsufficientStock(ConflictError):
    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            {"stock": [f"Only {available} unit(s) of product {product_id} available, {requested} requested"]}
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class UnauthorizedError(StorefrontError):
    """The caller is not allowed to act on the target resource."""


class ExternalServiceError(StorefrontError):
    """A collaborator outside the process (payment gateway) failed or timed out."""
