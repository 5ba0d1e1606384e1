from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so they compare with ``datetime.now(UTC)``."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
