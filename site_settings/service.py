"""
Contact settings: the WhatsApp number and email shown by the frontend.
"""

from typing import Optional

import structlog

from shared.database import ContactInfoModel, DatabaseManager, utcnow
from shared.exceptions import NotFoundError
from shared.validation import validate_phone

from .models import ContactResponse

logger = structlog.get_logger(__name__)

CONTACT_ROW_ID = "primary"


class ContactService:
    """Reads and upserts the single ``contact_info`` row."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def get_contact(self) -> ContactResponse:
        with self.db.transaction("get_contact", CONTACT_ROW_ID) as session:
            contact = session.get(ContactInfoModel, CONTACT_ROW_ID)
            if not contact:
                raise NotFoundError("Contact info", CONTACT_ROW_ID)
            return ContactResponse(phone=contact.phone_number, email=contact.email, updated_at=contact.updated_at)

    def update_contact(self, phone_number: Optional[str], email: Optional[str] = None) -> ContactResponse:
        phone = validate_phone(phone_number)
        email = (email or "").strip() or None

        with self.db.transaction("update_contact", CONTACT_ROW_ID) as session:
            contact = session.get(ContactInfoModel, CONTACT_ROW_ID)
            if contact is None:
                contact = ContactInfoModel(id=CONTACT_ROW_ID)
                session.add(contact)
            contact.phone_number = phone
            contact.email = email
            contact.updated_at = utcnow()
            session.flush()
            result = ContactResponse(phone=contact.phone_number, email=contact.email, updated_at=contact.updated_at)

        logger.info("Contact info updated", phone=phone)
        return result
