"""
Append-only timeline of loan status changes.

Events are keyed by loan id and survive the deletion of the active loan row.
"""

from typing import List, Optional

from sqlalchemy.orm import Session
import structlog

from shared.database import DatabaseManager, TimelineEventModel, utcnow
from shared.exceptions import ValidationError
from shared.validation import is_blank

from .models import TimelineEventResponse

logger = structlog.get_logger(__name__)


def add_timeline_event(
    session: Session,
    loan_id: str,
    status: Optional[str] = None,
    note: Optional[str] = ""
) -> TimelineEventModel:
    """Insert an event inside the caller's transaction."""
    event = TimelineEventModel(
        peminjaman_id=loan_id,
        status=status,
        catatan=note or "",
        created_at=utcnow(),
    )
    session.add(event)
    session.flush()
    return event


class TimelineLog:
    """Standalone access to the timeline for the HTTP layer."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def append(self, loan_id: str, status: Optional[str] = None, note: Optional[str] = "") -> TimelineEventResponse:
        if is_blank(loan_id):
            raise ValidationError("loanId is required", {"field": "loanId"})

        with self.db.transaction("append_timeline", loan_id) as session:
            event = add_timeline_event(session, loan_id, status, note)
            result = TimelineEventResponse.model_validate(event)

        logger.info("Timeline event appended", loan_id=loan_id, status=status)
        return result

    def list_by_loan(self, loan_id: str) -> List[TimelineEventResponse]:
        """Events for a loan, oldest first."""
        with self.db.transaction("list_timeline", loan_id) as session:
            events = (
                session.query(TimelineEventModel)
                .filter(TimelineEventModel.peminjaman_id == loan_id)
                .order_by(TimelineEventModel.created_at.asc(), TimelineEventModel.id.asc())
                .all()
            )
            return [TimelineEventResponse.model_validate(event) for event in events]
