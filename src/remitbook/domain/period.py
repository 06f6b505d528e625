"""Financial period closing."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from remitbook.database.base import Database
from remitbook.database.models import utc_now
from remitbook.domain.entities import PeriodClosing
from remitbook.domain.errors import ValidationError
from remitbook.domain.journal import LedgerService
from remitbook.utils.date_parser import to_utc_naive

logger = logging.getLogger(__name__)


class PeriodClosingService:
    """Service for closing financial periods.

    Closing snapshots every leaf account's full-history balance as
    ``closed_balance`` and moves the period boundary forward. Entries are
    never touched, so history stays queryable.
    """

    def __init__(self, db: Database, ledger: Optional[LedgerService] = None):
        """Initialize period closing service.

        Args:
            db: Database instance
            ledger: Ledger used to derive balances
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)

    def current_period_start(self) -> Optional[datetime]:
        """Start of the current period, or None before the first close."""
        return self.ledger.period_start()

    def close_period(self, closed_at: Optional[datetime] = None) -> PeriodClosing:
        """Close the current period.

        Args:
            closed_at: Closing instant, defaults to now (UTC)

        Returns:
            PeriodClosing with the snapshotted balances

        Raises:
            ValidationError: If closed_at is in the future or not after the current
                period start
        """
        # Fixed before any balance is read
        closed_at = to_utc_naive(closed_at) if closed_at is not None else utc_now()
        if closed_at > utc_now():
            raise ValidationError(f"Closing date {closed_at.isoformat()} is in the future")
        previous_start = self.current_period_start()
        if previous_start is not None and closed_at <= previous_start:
            raise ValidationError(
                f"Closing date {closed_at.isoformat()} must be after the current period start "
                f"{previous_start.isoformat()}"
            )

        balances = self.ledger.compute_balances(until=closed_at)
        self.db.close_period(closed_balances=balances, closed_at=closed_at)
        logger.info(
            "Closed period at %s (%d accounts snapshotted)", closed_at.isoformat(), len(balances)
        )
        return PeriodClosing(
            closed_at=closed_at,
            previous_start=previous_start,
            closed_balances=balances,
        )

    def compute_period_balance(self, account_id: str) -> Decimal:
        """Balance of an account from entries since the last close."""
        return self.ledger.compute_balance(account_id, since=self.current_period_start())
