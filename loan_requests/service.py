"""
Loan request state machine.

A request is created ``pending`` and an admin moves it to ``approved`` or
``rejected``. Rejected rows are purged later by the RejectedLoanSweeper;
approved rows leave the active table when they are archived into history.
"""

from datetime import date
from typing import Any, Callable, Dict, Optional

from sqlalchemy import func, or_
import structlog

from shared.config import settings
from shared.database import CatalogItemModel, DatabaseManager, LoanRequestModel, utcnow
from shared.exceptions import NotFoundError, ValidationError
from shared.validation import (
    LIKE_ESCAPE,
    Page,
    contains_pattern,
    normalize_limit,
    normalize_page,
    page_bounds,
    require_fields,
    validate_phone,
)
from loan_history.timeline import add_timeline_event

from .models import STATUS_ALL, LoanRequestCreate, LoanRequestResponse, LoanStats, LoanStatus

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("nama_lengkap", "nim", "barang_id", "tanggal_mulai", "tanggal_selesai", "telepon")
VALID_STATUSES = tuple(s.value for s in LoanStatus)


def loan_duration_days(start: date, end: date) -> int:
    """Whole days between two dates, never less than one."""
    return max(abs((end - start).days), 1)


def check_status(status: Optional[str]) -> str:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status. Use one of: {', '.join(VALID_STATUSES)}",
            {"field": "status", "allowed": list(VALID_STATUSES)},
        )
    return status


class LoanRequestService:
    """Operations over the active ``peminjaman`` table."""

    def __init__(self, db_manager: DatabaseManager, clock: Callable = utcnow):
        self.db = db_manager
        self.clock = clock

    def _validated_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        require_fields(
            data,
            REQUIRED_FIELDS,
            "Full name, NIM, item, start date, end date and phone number are required"
        )
        telepon = validate_phone(data["telepon"])

        start, end = data["tanggal_mulai"], data["tanggal_selesai"]
        if end < start:
            raise ValidationError("End date cannot be before start date", {"field": "tanggal_selesai"})

        quantity = data["jumlah_pinjam"] or 1
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", {"field": "jumlah_pinjam"})

        # Missing duration and cost are derived from the dates and item price
        # rather than defaulting to 1 day and 0
        duration = data["lama_pinjam"]
        if duration is None:
            duration = loan_duration_days(start, end)
        elif duration < 1:
            raise ValidationError("Loan duration must be at least 1 day", {"field": "lama_pinjam"})

        total = data["total_biaya"]
        if total is not None and total < 0:
            raise ValidationError("Total cost cannot be negative", {"field": "total_biaya"})

        return {
            "nama_lengkap": data["nama_lengkap"].strip(),
            "nim": data["nim"].strip(),
            "jurusan": (data["jurusan"] or "").strip(),
            "instansi": (data["instansi"] or "").strip(),
            "barang_id": data["barang_id"],
            "jumlah_pinjam": quantity,
            "tanggal_mulai": start,
            "tanggal_selesai": end,
            "lama_pinjam": duration,
            "total_biaya": total,
            "catatan": data["catatan"] or "",
            "telepon": telepon,
            "email": (data["email"] or "").strip(),
        }

    def create(self, payload: LoanRequestCreate, channel: Optional[str] = None) -> LoanRequestResponse:
        """Validate and persist a new ``pending`` request."""
        fields = self._validated_fields(payload.model_dump())

        with self.db.transaction("create_loan_request") as session:
            item = session.get(CatalogItemModel, fields["barang_id"])
            if fields["total_biaya"] is None:
                fields["total_biaya"] = (
                    item.harga * fields["jumlah_pinjam"] * fields["lama_pinjam"] if item else 0
                )

            now = self.clock()
            loan = LoanRequestModel(
                **fields,
                status=LoanStatus.PENDING.value,
                metode_konfirmasi=channel or settings.DEFAULT_CONFIRMATION_METHOD,
                created_at=now,
                updated_at=now,
            )
            if item:
                loan.barang = item
            session.add(loan)
            session.flush()

            add_timeline_event(session, loan.id, LoanStatus.PENDING.value, "Loan request submitted")
            result = LoanRequestResponse.model_validate(loan)

        logger.info("Loan request created",
                    loan_id=result.id,
                    barang_id=result.barang_id,
                    item_found=item is not None)
        return result

    def get(self, loan_id: str) -> LoanRequestResponse:
        with self.db.transaction("get_loan_request", loan_id) as session:
            loan = session.get(LoanRequestModel, loan_id)
            if not loan:
                raise NotFoundError("Loan request", loan_id)
            return LoanRequestResponse.model_validate(loan)

    def update_status(self, loan_id: str, new_status: Optional[str]) -> LoanRequestResponse:
        """
        Move a request to a new status.

        The status is checked before the row is touched. Setting the status a
        row already has is a no-op. Concurrent updates are last-write-wins.
        """
        check_status(new_status)

        with self.db.transaction("update_loan_status", loan_id) as session:
            loan = session.get(LoanRequestModel, loan_id)
            if not loan:
                raise NotFoundError("Loan request", loan_id)

            previous = loan.status
            if previous == new_status:
                # Same status: keep updated_at so a pending purge is not postponed
                result = LoanRequestResponse.model_validate(loan)
            else:
                loan.status = new_status
                loan.updated_at = self.clock()
                add_timeline_event(
                    session,
                    loan_id,
                    new_status,
                    f"Status changed from {previous} to {new_status}"
                )
                result = LoanRequestResponse.model_validate(loan)

        if previous == new_status:
            logger.info("Loan status unchanged", loan_id=loan_id, status=new_status)
            return result

        logger.info("Loan status updated",
                    loan_id=loan_id,
                    previous_status=previous,
                    status=new_status)
        if new_status == LoanStatus.REJECTED.value:
            logger.info("Rejected loan scheduled for purge",
                        loan_id=loan_id,
                        delay_seconds=settings.REJECTED_PURGE_DELAY_SECONDS)
        return result

    def delete(self, loan_id: str) -> None:
        with self.db.transaction("delete_loan_request", loan_id) as session:
            loan = session.get(LoanRequestModel, loan_id)
            if not loan:
                raise NotFoundError("Loan request", loan_id)
            session.delete(loan)
        logger.info("Loan request deleted", loan_id=loan_id)

    def list(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None
    ) -> Page:
        """
        Filtered, newest-first page of requests.

        ``search`` matches requester name, NIM or item name. ``status``
        "semua" (or nothing) means every status. Both filters combine.
        """
        page = normalize_page(page)
        limit = normalize_limit(limit)
        if status in (None, "", STATUS_ALL):
            status = None
        else:
            check_status(status)

        with self.db.transaction("list_loan_requests") as session:
            query = session.query(LoanRequestModel).outerjoin(
                CatalogItemModel, LoanRequestModel.barang_id == CatalogItemModel.id
            )
            if search and search.strip():
                pattern = contains_pattern(search.strip())
                query = query.filter(or_(
                    LoanRequestModel.nama_lengkap.ilike(pattern, escape=LIKE_ESCAPE),
                    LoanRequestModel.nim.ilike(pattern, escape=LIKE_ESCAPE),
                    CatalogItemModel.nama.ilike(pattern, escape=LIKE_ESCAPE)
                ))
            if status:
                query = query.filter(LoanRequestModel.status == status)

            total = query.count()
            start, _ = page_bounds(page, limit)
            rows = (
                query.order_by(LoanRequestModel.created_at.desc(), LoanRequestModel.id)
                .offset(start)
                .limit(limit)
                .all()
            )
            items = [LoanRequestResponse.model_validate(row) for row in rows]

        return Page(items=items, page=page, limit=limit, total=total)

    def stats(self) -> LoanStats:
        with self.db.transaction("loan_request_stats") as session:
            rows = (
                session.query(LoanRequestModel.status, func.count(LoanRequestModel.id))
                .group_by(LoanRequestModel.status)
                .all()
            )

        counts = {status: 0 for status in VALID_STATUSES}
        for status, count in rows:
            if status in counts:
                counts[status] = count
        return LoanStats(total=sum(counts.values()), **counts)
