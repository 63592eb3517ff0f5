"""
Input validation and pagination helpers.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import settings
from .exceptions import ValidationError

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
_WHITESPACE = re.compile(r"\s+")


def normalize_phone(phone: Optional[str]) -> str:
    """Strip all whitespace from a phone number."""
    return _WHITESPACE.sub("", phone or "")


def is_valid_phone(phone: Optional[str]) -> bool:
    """Check an E.164-like phone number (whitespace is ignored)."""
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


def validate_phone(phone: Optional[str]) -> str:
    """Return the normalized phone number or raise ValidationError."""
    normalized = normalize_phone(phone)
    if not is_valid_phone(normalized):
        raise ValidationError(
            "Invalid phone number format. Use the international format "
            "(example: +628123456789)",
            {"field": "telepon"},
        )
    return normalized


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def require_fields(data: Dict[str, Any], fields: Sequence[str], message: str = None) -> None:
    """Raise ValidationError listing every blank or missing field."""
    missing = [name for name in fields if is_blank(data.get(name))]
    if missing:
        raise ValidationError(
            message or f"Missing required fields: {', '.join(missing)}",
            {"missing_fields": missing},
        )


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """LIKE pattern matching ``term`` as a literal substring; use with ``escape=LIKE_ESCAPE``."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def normalize_page(page: Optional[int]) -> int:
    if page is None or page < 1:
        return 1
    return page


def normalize_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.DEFAULT_PAGE_SIZE
    if limit < 1:
        return 1
    if limit > settings.MAX_PAGE_SIZE:
        return settings.MAX_PAGE_SIZE
    return limit


def page_bounds(page: int, limit: int) -> Tuple[int, int]:
    """Return the [start, end) slice for a 1-based page."""
    start = (page - 1) * limit
    return start, start + limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }


@dataclass
class Page:
    """One page of a filtered listing plus the total match count."""
    items: List[Any]
    page: int
    limit: int
    total: int

    @property
    def pagination(self) -> Dict[str, int]:
        return pagination_meta(self.page, self.limit, self.total)
