"""
Site settings API endpoints.
"""

from fastapi import APIRouter, Depends

from shared.database import DatabaseManager, get_database
from shared.responses import success_response

from .models import ContactUpdate
from .service import ContactService

router = APIRouter()


def get_contact_service(db: DatabaseManager = Depends(get_database)) -> ContactService:
    return ContactService(db)


@router.get("/contact")
async def get_contact(service: ContactService = Depends(get_contact_service)):
    return success_response(service.get_contact())


@router.put("/contact")
async def update_contact(payload: ContactUpdate, service: ContactService = Depends(get_contact_service)):
    contact = service.update_contact(payload.phone_number, payload.email)
    return success_response(contact, "Contact info updated")
