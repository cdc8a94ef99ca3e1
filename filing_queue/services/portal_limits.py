"""
PortalLimitProvider -- jurisdiction code -> maximum batch size.

Contract:
    ``resolve()`` always returns a positive integer.  Lookup order: the
    stored ``portal_limits`` rows (when supplied), the configured
    ``SchedulerSettings.portal_limits`` mapping, then the default (100).
    A missing or non-positive limit is a CONFIGURATION_MISSING condition,
    recovered by the default and logged at DEBUG.

    ``load_stored()`` reads the whole table in one SELECT, so a planning
    pass touches the store once no matter how many groups it plans.

Failure modes:
    - StoreUnavailableError if the table read fails.
"""

from __future__ import annotations

from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filing_config.schema import SchedulerSettings
from filing_kernel.exceptions import ConfigurationMissingError, StoreUnavailableError
from filing_kernel.logging_config import get_logger
from filing_queue.selectors.queue_selector import QueueSelector

logger = get_logger("queue.portal_limits")


class PortalLimitProvider:
    """Resolves the maximum records per batch for a jurisdiction."""

    def __init__(self, settings: SchedulerSettings | None = None):
        self._settings = settings or SchedulerSettings()

    @property
    def default_max_batch_size(self) -> int:
        return self._settings.default_max_batch_size

    def load_stored(self, session: Session) -> dict[str, int | None]:
        """Every row of the portal_limits table.

        Raises:
            StoreUnavailableError: If the read fails.  The session is rolled
                back first so the caller can keep using it.
        """
        try:
            return QueueSelector(session).portal_limits()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailableError("portal limit lookup", str(exc)) from exc

    def resolve(
        self,
        jurisdiction_code: str,
        stored: Mapping[str, int | None] | None = None,
    ) -> int:
        """Max batch size for ``jurisdiction_code``."""
        if stored is not None:
            limit = stored.get(jurisdiction_code)
            if limit is not None and limit > 0:
                return limit

        configured = self._settings.portal_limits.get(jurisdiction_code)
        if configured is not None and configured > 0:
            return configured

        missing = ConfigurationMissingError(jurisdiction_code)
        logger.debug(
            "portal_limit_defaulted",
            extra={
                "jurisdiction_code": jurisdiction_code,
                "error_code": missing.code,
                "max_batch_size": self._settings.default_max_batch_size,
            },
        )
        return self._settings.default_max_batch_size
