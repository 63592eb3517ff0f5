"""
Loan request API endpoints.

Submission is public; listing, status changes and deletion are admin
operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from shared.database import DatabaseManager, get_database
from shared.responses import success_response

from .models import LoanRequestCreate, LoanStatusUpdate
from .service import LoanRequestService

router = APIRouter()


def get_loan_request_service(db: DatabaseManager = Depends(get_database)) -> LoanRequestService:
    return LoanRequestService(db)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan_request(
    payload: LoanRequestCreate,
    service: LoanRequestService = Depends(get_loan_request_service)
):
    """
    Submit a new loan request.

    The request starts as ``pending``; confirmation happens over WhatsApp.
    """
    loan = service.create(payload)
    return success_response(loan, "Loan request submitted")


@router.get("")
async def list_loan_requests(
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    service: LoanRequestService = Depends(get_loan_request_service)
):
    """List loan requests, newest first, with pagination."""
    result = service.list(search=search, status=status, page=page, limit=limit)
    return success_response(result.items, pagination=result.pagination)


@router.get("/stats")
async def get_loan_request_stats(service: LoanRequestService = Depends(get_loan_request_service)):
    return success_response(service.stats())


@router.get("/{loan_id}")
async def get_loan_request(loan_id: str, service: LoanRequestService = Depends(get_loan_request_service)):
    return success_response(service.get(loan_id))


@router.patch("/{loan_id}/status")
async def update_loan_status(
    loan_id: str,
    payload: LoanStatusUpdate,
    service: LoanRequestService = Depends(get_loan_request_service)
):
    loan = service.update_status(loan_id, payload.status)
    return success_response(loan, f"Loan status changed to {loan.status}")


@router.delete("/{loan_id}")
async def delete_loan_request(loan_id: str, service: LoanRequestService = Depends(get_loan_request_service)):
    service.delete(loan_id)
    return success_response(message="Loan request deleted")
