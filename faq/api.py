"""
FAQ API endpoints.
"""

from fastapi import APIRouter, Depends, status

from shared.database import DatabaseManager, get_database
from shared.responses import success_response

from .models import FaqCreate, FaqStatusUpdate, FaqUpdate
from .service import FaqService

router = APIRouter()


def get_faq_service(db: DatabaseManager = Depends(get_database)) -> FaqService:
    return FaqService(db)


@router.get("")
async def list_active_faqs(service: FaqService = Depends(get_faq_service)):
    """Active FAQs for the public help page."""
    return success_response(service.list_active())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_faq(payload: FaqCreate, service: FaqService = Depends(get_faq_service)):
    return success_response(service.create(payload), "FAQ created")


@router.get("/admin/all")
async def list_all_faqs(service: FaqService = Depends(get_faq_service)):
    return success_response(service.list_all())


@router.get("/category/{category}")
async def list_faqs_by_category(category: str, service: FaqService = Depends(get_faq_service)):
    return success_response(service.list_by_category(category))


@router.get("/{faq_id}")
async def get_faq(faq_id: str, service: FaqService = Depends(get_faq_service)):
    return success_response(service.get(faq_id))


@router.put("/{faq_id}")
async def update_faq(faq_id: str, payload: FaqUpdate, service: FaqService = Depends(get_faq_service)):
    return success_response(service.update(faq_id, payload), "FAQ updated")


@router.patch("/{faq_id}/status")
async def set_faq_status(faq_id: str, payload: FaqStatusUpdate, service: FaqService = Depends(get_faq_service)):
    faq = service.set_active(faq_id, payload.is_active)
    return success_response(faq, "FAQ activated" if faq.is_active else "FAQ deactivated")


@router.delete("/{faq_id}")
async def delete_faq(faq_id: str, service: FaqService = Depends(get_faq_service)):
    service.delete(faq_id)
    return success_response(message="FAQ deleted")
