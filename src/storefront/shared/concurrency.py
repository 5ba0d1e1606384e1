"""Optimistic-concurrency helpers.

Aggregates carry a ``_version`` that Protean checks on every save. A writer
holding a stale copy fails with ``ExpectedVersionError``; the helpers below
re-read and re-apply the change a bounded number of times.

Inside a command handler the writes are staged in the handler's Unit of Work
and checked only when it commits, so the retry happens around the whole
command (``process_command``) rather than around the single write.
"""

from typing import Any, Callable, TypeVar

import structlog
from protean import UnitOfWork
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain, current_uow

from storefront import settings
from storefront.errors import ConflictError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _conflict(label: str) -> ConflictError:
    return ConflictError({"_concurrency": [f"Too many concurrent updates during {label}, please retry"]})


def with_version_retry(operation: Callable[[], T], *, label: str, max_attempts: int | None = None) -> T:
    """Run ``operation`` (read, check, write) until it commits without a version clash.

    ``operation`` must re-read the aggregate on every call. Domain errors raised
    by it propagate immediately; only version conflicts are retried. When an
    enclosing Unit of Work is active the operation runs once and a clash
    surfaces at that Unit of Work's commit.
    """
    if current_uow and current_uow.in_progress:
        return operation()

    attempts = max_attempts or settings.reservation_max_attempts()

    for attempt in range(1, attempts + 1):
        try:
            with UnitOfWork():
                return operation()
        except ExpectedVersionError:
            logger.info("version_conflict_retry", operation=label, attempt=attempt)

    logger.warning("version_conflict_exhausted", operation=label, attempts=attempts)
    raise _conflict(label)


def process_command(command: Any, max_attempts: int | None = None) -> Any:
    """Process ``command`` synchronously, re-running it when its commit loses a version race.

    Every attempt re-reads its aggregates, so a retried checkout sees the
    winner's stock and a retried payment confirmation sees ``is_paid``.
    """
    label = command.__class__.__name__
    attempts = max_attempts or settings.reservation_max_attempts()

    for attempt in range(1, attempts + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError:
            logger.info("command_version_conflict", command=label, attempt=attempt)

    logger.warning("command_version_conflict_exhausted", command=label, attempts=attempts)
    raise _conflict(label)
