"""
Loan history service.

Archiving moves a loan from the active table into the append-only history
table. The snapshot insert, the delete of the active row and the timeline
event share one transaction, so a loan is always in exactly one of the two
tables.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
import structlog

from shared.database import DatabaseManager, LoanHistoryModel, LoanRequestModel, utcnow
from shared.exceptions import NotFoundError, PartialArchivalFailure, StoreError, ValidationError
from shared.validation import (
    LIKE_ESCAPE,
    Page,
    contains_pattern,
    is_blank,
    normalize_limit,
    normalize_page,
    page_bounds,
)

from .models import (
    MISSING_ITEM_NAME,
    DuplicateArchival,
    FinalStatus,
    HistoryRecordResponse,
    HistoryStats,
    ReturnCondition,
)
from .timeline import add_timeline_event

logger = structlog.get_logger(__name__)

FINAL_STATUSES = tuple(s.value for s in FinalStatus)
RETURN_CONDITIONS = tuple(c.value for c in ReturnCondition)


def _date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[Tuple[datetime, datetime]]:
    """[start 00:00, day after end 00:00) when both bounds are given."""
    if start_date is None or end_date is None:
        return None
    return (
        datetime.combine(start_date, time.min),
        datetime.combine(end_date + timedelta(days=1), time.min),
    )


def _snapshot(loan: LoanRequestModel, final_status: str, return_condition: str,
              admin_notes: str, fine: float, completed_at: datetime) -> LoanHistoryModel:
    item = loan.barang
    return LoanHistoryModel(
        peminjaman_id=loan.id,
        nama_lengkap=loan.nama_lengkap,
        nim=loan.nim,
        jurusan=loan.jurusan,
        instansi=loan.instansi,
        barang_nama=item.nama if item else MISSING_ITEM_NAME,
        barang_gambar=list(item.gambar or []) if item else [],
        barang_harga=item.harga if item else None,
        jumlah_pinjam=loan.jumlah_pinjam,
        tanggal_mulai=loan.tanggal_mulai,
        tanggal_selesai=loan.tanggal_selesai,
        lama_pinjam=loan.lama_pinjam,
        total_biaya=loan.total_biaya,
        catatan=loan.catatan,
        telepon=loan.telepon,
        email=loan.email,
        status_akhir=final_status,
        kondisi_kembali=return_condition,
        denda=fine,
        catatan_admin=admin_notes,
        completed_at=completed_at,
        created_at=completed_at,
    )


class LoanHistoryService:
    """Archival, queries and consistency checks over ``riwayat_peminjaman``."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def complete_loan(
        self,
        loan_id: Optional[str],
        return_condition: Optional[str] = None,
        admin_notes: Optional[str] = None,
        fine: Optional[float] = None,
        final_status: Optional[str] = None
    ) -> HistoryRecordResponse:
        """
        Archive an active loan.

        Raises NotFoundError when the loan is not active. Any store failure
        after the fetch rolls the whole archival back and raises
        PartialArchivalFailure naming the stage. A history row already
        present for the loan is reused, which makes retries safe.
        """
        if is_blank(loan_id):
            raise ValidationError("loanId is required", {"field": "loanId"})
        return_condition = return_condition or ReturnCondition.BAIK.value
        final_status = final_status or FinalStatus.SELESAI.value
        fine = 0 if fine is None else fine
        if return_condition not in RETURN_CONDITIONS:
            raise ValidationError(
                f"Invalid return condition. Use one of: {', '.join(RETURN_CONDITIONS)}",
                {"field": "returnCondition"},
            )
        if final_status not in FINAL_STATUSES:
            raise ValidationError(
                f"Invalid final status. Use one of: {', '.join(FINAL_STATUSES)}",
                {"field": "finalStatus"},
            )
        if fine < 0:
            raise ValidationError("Fine cannot be negative", {"field": "fine"})

        stage = "fetch"
        reused = False
        try:
            with self.db.session_scope() as session:
                loan = session.get(LoanRequestModel, loan_id)
                if not loan:
                    raise NotFoundError("Loan request", loan_id)

                stage = "insert_history"
                record = (
                    session.query(LoanHistoryModel)
                    .filter(LoanHistoryModel.peminjaman_id == loan_id)
                    .one_or_none()
                )
                if record:
                    reused = True
                    logger.warning("History record already exists, skipping insert",
                                   loan_id=loan_id,
                                   history_id=record.id)
                else:
                    record = _snapshot(loan, final_status, return_condition,
                                       admin_notes or "", fine, utcnow())
                    session.add(record)
                    session.flush()

                stage = "delete_active"
                session.delete(loan)
                session.flush()

                stage = "append_timeline"
                label = "completed" if final_status == FinalStatus.SELESAI.value else "cancelled"
                add_timeline_event(
                    session,
                    loan_id,
                    final_status,
                    f"Loan {label}; item returned in condition {return_condition}"
                )

                stage = "commit"
                result = HistoryRecordResponse.model_validate(record)

        except SQLAlchemyError as e:
            logger.error("Loan archival failed",
                         loan_id=loan_id,
                         stage=stage,
                         error=str(e))
            if stage == "fetch":
                raise StoreError("complete_loan", "Failed to load loan for archival", loan_id) from e
            raise PartialArchivalFailure(loan_id, stage, str(e)) from e

        logger.info("Loan archived",
                    loan_id=loan_id,
                    history_id=result.id,
                    status_akhir=result.status_akhir,
                    reused_history=reused)
        return result

    def list(
        self,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status_akhir: Optional[str] = None,
        kondisi_kembali: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None
    ) -> Page:
        page = normalize_page(page)
        limit = normalize_limit(limit)

        with self.db.transaction("list_history") as session:
            query = session.query(LoanHistoryModel)
            if search and search.strip():
                pattern = contains_pattern(search.strip())
                query = query.filter(or_(
                    LoanHistoryModel.nama_lengkap.ilike(pattern, escape=LIKE_ESCAPE),
                    LoanHistoryModel.nim.ilike(pattern, escape=LIKE_ESCAPE),
                    LoanHistoryModel.barang_nama.ilike(pattern, escape=LIKE_ESCAPE)
                ))
            bounds = _date_range(start_date, end_date)
            if bounds:
                query = query.filter(
                    LoanHistoryModel.created_at >= bounds[0],
                    LoanHistoryModel.created_at < bounds[1]
                )
            if status_akhir:
                query = query.filter(LoanHistoryModel.status_akhir == status_akhir)
            if kondisi_kembali:
                query = query.filter(LoanHistoryModel.kondisi_kembali == kondisi_kembali)

            total = query.count()
            start, _ = page_bounds(page, limit)
            rows = (
                query.order_by(LoanHistoryModel.created_at.desc(), LoanHistoryModel.id)
                .offset(start)
                .limit(limit)
                .all()
            )
            items = [HistoryRecordResponse.model_validate(row) for row in rows]

        return Page(items=items, page=page, limit=limit, total=total)

    def get(self, history_id: str) -> HistoryRecordResponse:
        with self.db.transaction("get_history", history_id) as session:
            record = session.get(LoanHistoryModel, history_id)
            if not record:
                raise NotFoundError("History record", history_id)
            return HistoryRecordResponse.model_validate(record)

    def export(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[HistoryRecordResponse]:
        """Every record in the date range (or all of them), newest first."""
        with self.db.transaction("export_history") as session:
            query = session.query(LoanHistoryModel)
            bounds = _date_range(start_date, end_date)
            if bounds:
                query = query.filter(
                    LoanHistoryModel.created_at >= bounds[0],
                    LoanHistoryModel.created_at < bounds[1]
                )
            rows = query.order_by(LoanHistoryModel.created_at.desc()).all()
            records = [HistoryRecordResponse.model_validate(row) for row in rows]

        logger.info("History exported", count=len(records))
        return records

    def stats(self) -> HistoryStats:
        with self.db.transaction("history_stats") as session:
            rows = session.query(
                LoanHistoryModel.status_akhir,
                LoanHistoryModel.total_biaya,
                LoanHistoryModel.denda
            ).all()

        return HistoryStats(
            totalLoans=len(rows),
            totalRevenue=sum(row.total_biaya or 0 for row in rows),
            totalFines=sum(row.denda or 0 for row in rows),
            completedCount=sum(1 for row in rows if row.status_akhir == FinalStatus.SELESAI.value),
            cancelledCount=sum(1 for row in rows if row.status_akhir == FinalStatus.DIBATALKAN.value),
        )

    def find_duplicates(self) -> List[DuplicateArchival]:
        """Loans that are archived but still present in the active table."""
        with self.db.transaction("find_archival_duplicates") as session:
            rows = (
                session.query(
                    LoanRequestModel.id,
                    LoanRequestModel.nama_lengkap,
                    LoanRequestModel.status,
                    LoanHistoryModel.id.label("history_id")
                )
                .join(LoanHistoryModel, LoanHistoryModel.peminjaman_id == LoanRequestModel.id)
                .order_by(LoanRequestModel.created_at)
                .all()
            )

        duplicates = [
            DuplicateArchival(
                loan_id=row.id,
                history_id=row.history_id,
                nama_lengkap=row.nama_lengkap,
                status=row.status
            )
            for row in rows
        ]
        if duplicates:
            logger.warning("Archived loans still active", count=len(duplicates))
        return duplicates

    def reconcile(self, loan_id: str) -> HistoryRecordResponse:
        """Drop the active copy of a loan that is already archived."""
        with self.db.transaction("reconcile_archival", loan_id) as session:
            record = (
                session.query(LoanHistoryModel)
                .filter(LoanHistoryModel.peminjaman_id == loan_id)
                .one_or_none()
            )
            if not record:
                raise NotFoundError("Archived loan", loan_id)
            loan = session.get(LoanRequestModel, loan_id)
            if not loan:
                raise NotFoundError("Loan request", loan_id)

            session.delete(loan)
            add_timeline_event(session, loan_id, record.status_akhir, "Active duplicate removed after archival")
            result = HistoryRecordResponse.model_validate(record)

        logger.info("Archival duplicate reconciled", loan_id=loan_id, history_id=result.id)
        return result
