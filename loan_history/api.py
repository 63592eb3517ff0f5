"""
Loan history API endpoints: archival, timeline, queries and consistency.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from shared.database import DatabaseManager, get_database
from shared.responses import success_response

from .models import CompleteLoanRequest, TimelineAppendRequest
from .service import LoanHistoryService
from .timeline import TimelineLog

router = APIRouter()


def get_history_service(db: DatabaseManager = Depends(get_database)) -> LoanHistoryService:
    return LoanHistoryService(db)


def get_timeline_log(db: DatabaseManager = Depends(get_database)) -> TimelineLog:
    return TimelineLog(db)


@router.get("")
async def list_history(
    search: Optional[str] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    status_akhir: Optional[str] = None,
    kondisi_kembali: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    service: LoanHistoryService = Depends(get_history_service)
):
    """
    List archived loans, newest first.

    The date range applies only when both ``startDate`` and ``endDate`` are
    given; the end date is inclusive.
    """
    result = service.list(
        search=search,
        start_date=start_date,
        end_date=end_date,
        status_akhir=status_akhir,
        kondisi_kembali=kondisi_kembali,
        page=page,
        limit=limit
    )
    return success_response(result.items, pagination=result.pagination)


@router.get("/stats")
async def get_history_stats(service: LoanHistoryService = Depends(get_history_service)):
    return success_response(service.stats())


@router.post("/complete")
async def complete_loan(
    payload: CompleteLoanRequest,
    service: LoanHistoryService = Depends(get_history_service)
):
    """Archive an active loan into history and remove it from the active table."""
    record = service.complete_loan(
        payload.loanId,
        return_condition=payload.returnCondition,
        admin_notes=payload.adminNotes,
        fine=payload.fine,
        final_status=payload.finalStatus
    )
    return success_response(record, "Loan moved to history")


@router.post("/timeline", status_code=status.HTTP_201_CREATED)
async def append_timeline(
    payload: TimelineAppendRequest,
    timeline: TimelineLog = Depends(get_timeline_log)
):
    event = timeline.append(payload.loanId, payload.status, payload.note)
    return success_response(event, "Timeline event recorded")


@router.get("/timeline/{loan_id}")
async def get_timeline(loan_id: str, timeline: TimelineLog = Depends(get_timeline_log)):
    return success_response(timeline.list_by_loan(loan_id))


@router.get("/export")
async def export_history(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: LoanHistoryService = Depends(get_history_service)
):
    records = service.export(start_date=start_date, end_date=end_date)
    return success_response(records, count=len(records))


@router.get("/consistency")
async def check_consistency(service: LoanHistoryService = Depends(get_history_service)):
    """Report loans that are both archived and still active."""
    duplicates = service.find_duplicates()
    return success_response(duplicates, consistent=not duplicates)


@router.post("/consistency/{loan_id}/reconcile")
async def reconcile_duplicate(loan_id: str, service: LoanHistoryService = Depends(get_history_service)):
    record = service.reconcile(loan_id)
    return success_response(record, "Active duplicate removed")


@router.get("/{history_id}")
async def get_history_record(history_id: str, service: LoanHistoryService = Depends(get_history_service)):
    return success_response(service.get(history_id))
