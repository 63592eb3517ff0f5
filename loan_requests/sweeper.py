"""
Background purge of rejected loan requests.

A rejected request stays visible for a short grace period and is then
deleted. Eligibility is derived from the stored ``updated_at`` so nothing is
lost across restarts, and a row that was re-approved in the meantime is no
longer ``rejected`` and is left alone.
"""

import asyncio
from datetime import timedelta
from typing import Callable, List, Optional

import structlog

from shared.config import settings
from shared.database import DatabaseManager, LoanRequestModel, utcnow
from loan_history.timeline import add_timeline_event

from .models import LoanStatus

logger = structlog.get_logger(__name__)


class RejectedLoanSweeper:
    """Deletes rejected requests older than the purge delay."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        delay_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
        clock: Callable = utcnow
    ):
        self.db = db_manager
        self.delay_seconds = (
            settings.REJECTED_PURGE_DELAY_SECONDS if delay_seconds is None else delay_seconds
        )
        self.interval_seconds = (
            settings.SWEEPER_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.clock = clock
        self.running = False
        self.sweeper_task: Optional[asyncio.Task] = None

    def sweep(self) -> List[str]:
        """Purge every eligible row and return the deleted ids."""
        cutoff = self.clock() - timedelta(seconds=self.delay_seconds)

        with self.db.transaction("purge_rejected_loans") as session:
            eligible = (
                LoanRequestModel.status == LoanStatus.REJECTED.value,
                LoanRequestModel.updated_at <= cutoff,
            )
            purged = [row.id for row in session.query(LoanRequestModel.id).filter(*eligible).all()]
            if purged:
                session.query(LoanRequestModel).filter(
                    LoanRequestModel.id.in_(purged), *eligible
                ).delete(synchronize_session=False)
                for loan_id in purged:
                    add_timeline_event(session, loan_id, "deleted", "Rejected request purged automatically")

        if purged:
            logger.info("Rejected loan requests purged", count=len(purged), loan_ids=purged)
        return purged

    async def start(self):
        """Start the sweep loop as a background task."""
        if self.running:
            logger.warning("Rejected loan sweeper is already running")
            return

        self.running = True
        self.sweeper_task = asyncio.create_task(self.run())
        logger.info("Rejected loan sweeper started",
                    delay_seconds=self.delay_seconds,
                    interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the sweep loop."""
        if not self.running:
            return

        self.running = False
        if self.sweeper_task:
            self.sweeper_task.cancel()
            try:
                await self.sweeper_task
            except asyncio.CancelledError:
                pass
            self.sweeper_task = None

        logger.info("Rejected loan sweeper stopped")

    async def run(self):
        """Sweep every ``interval_seconds`` until stopped; failures are logged."""
        while self.running:
            try:
                self.sweep()
            except Exception as e:
                logger.error("Rejected loan sweep failed", error=str(e))
            await asyncio.sleep(self.interval_seconds)
