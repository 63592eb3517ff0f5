"""
FAQ management for the public help page.
"""

from typing import Any, Dict, List, Optional

import structlog

from shared.database import DatabaseManager, FaqModel, utcnow
from shared.exceptions import NotFoundError, ValidationError
from shared.validation import is_blank

from .models import DEFAULT_CATEGORY, MAX_ANSWER_LENGTH, MAX_QUESTION_LENGTH, FaqCreate, FaqResponse, FaqUpdate

logger = structlog.get_logger(__name__)


def _clean_text(field: str, value: Optional[str], max_length: int) -> str:
    if is_blank(value):
        raise ValidationError(f"{field.capitalize()} is required", {"field": field})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(
            f"{field.capitalize()} cannot exceed {max_length} characters",
            {"field": field, "max_length": max_length},
        )
    return value


class FaqService:
    """CRUD operations over the ``faqs`` table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def _list(self, operation: str, active_only: bool, category: Optional[str] = None) -> List[FaqResponse]:
        with self.db.transaction(operation) as session:
            query = session.query(FaqModel)
            if active_only:
                query = query.filter(FaqModel.is_active.is_(True))
            if category:
                query = query.filter(FaqModel.category == category)
            rows = query.order_by(FaqModel.created_at.desc()).all()
            return [FaqResponse.model_validate(row) for row in rows]

    def list_active(self) -> List[FaqResponse]:
        return self._list("list_active_faqs", active_only=True)

    def list_by_category(self, category: str) -> List[FaqResponse]:
        return self._list("list_faqs_by_category", active_only=True, category=category)

    def list_all(self) -> List[FaqResponse]:
        """Every FAQ, including inactive ones."""
        return self._list("list_all_faqs", active_only=False)

    def get(self, faq_id: str) -> FaqResponse:
        with self.db.transaction("get_faq", faq_id) as session:
            faq = session.get(FaqModel, faq_id)
            if not faq:
                raise NotFoundError("FAQ", faq_id)
            return FaqResponse.model_validate(faq)

    def create(self, payload: FaqCreate) -> FaqResponse:
        faq = FaqModel(
            question=_clean_text("question", payload.question, MAX_QUESTION_LENGTH),
            answer=_clean_text("answer", payload.answer, MAX_ANSWER_LENGTH),
            category=(payload.category or "").strip() or DEFAULT_CATEGORY,
            is_active=True if payload.is_active is None else payload.is_active,
            created_by="admin",
        )
        with self.db.transaction("create_faq") as session:
            session.add(faq)
            session.flush()
            result = FaqResponse.model_validate(faq)

        logger.info("FAQ created", faq_id=result.id, category=result.category)
        return result

    def update(self, faq_id: str, payload: FaqUpdate) -> FaqResponse:
        changes: Dict[str, Any] = {}
        data = payload.model_dump(exclude_unset=True)
        if "question" in data:
            changes["question"] = _clean_text("question", data["question"], MAX_QUESTION_LENGTH)
        if "answer" in data:
            changes["answer"] = _clean_text("answer", data["answer"], MAX_ANSWER_LENGTH)
        if "category" in data:
            changes["category"] = (data["category"] or "").strip() or DEFAULT_CATEGORY
        if data.get("is_active") is not None:
            changes["is_active"] = data["is_active"]

        with self.db.transaction("update_faq", faq_id) as session:
            faq = session.get(FaqModel, faq_id)
            if not faq:
                raise NotFoundError("FAQ", faq_id)
            for field, value in changes.items():
                setattr(faq, field, value)
            faq.updated_at = utcnow()
            session.flush()
            result = FaqResponse.model_validate(faq)

        logger.info("FAQ updated", faq_id=faq_id, fields=sorted(changes))
        return result

    def set_active(self, faq_id: str, is_active: Optional[bool]) -> FaqResponse:
        if is_active is None:
            raise ValidationError("is_active must be true or false", {"field": "is_active"})

        with self.db.transaction("set_faq_status", faq_id) as session:
            faq = session.get(FaqModel, faq_id)
            if not faq:
                raise NotFoundError("FAQ", faq_id)
            faq.is_active = is_active
            faq.updated_at = utcnow()
            session.flush()
            result = FaqResponse.model_validate(faq)

        logger.info("FAQ status changed", faq_id=faq_id, is_active=is_active)
        return result

    def delete(self, faq_id: str) -> None:
        with self.db.transaction("delete_faq", faq_id) as session:
            faq = session.get(FaqModel, faq_id)
            if not faq:
                raise NotFoundError("FAQ", faq_id)
            session.delete(faq)
        logger.info("FAQ deleted", faq_id=faq_id)
