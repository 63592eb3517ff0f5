"""
Loan request Pydantic models for request/response validation.

Required-field and phone checks live in the service so that every caller
gets the same ValidationError, whatever transport it uses.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog.models import CatalogItemSummary


class LoanStatus(str, Enum):
    """Active loan request status values."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STATUS_ALL = "semua"


class LoanRequestCreate(BaseModel):
    """Schema for submitting a new loan request."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    nama_lengkap: Optional[str] = Field(None, max_length=255, description="Requester full name")
    nim: Optional[str] = Field(None, max_length=100, description="Student/member id")
    jurusan: Optional[str] = Field(None, max_length=255)
    instansi: Optional[str] = Field(None, max_length=255)
    barang_id: Optional[str] = Field(None, description="Catalog item id")
    jumlah_pinjam: Optional[int] = Field(None, description="Quantity, defaults to 1")
    tanggal_mulai: Optional[date] = None
    tanggal_selesai: Optional[date] = None
    lama_pinjam: Optional[int] = Field(None, description="Duration in days, derived from the dates when absent")
    total_biaya: Optional[float] = Field(None, description="Total cost, derived from the item price when absent")
    catatan: Optional[str] = None
    telepon: Optional[str] = Field(None, description="E.164-like phone number")
    email: Optional[str] = None

    @field_validator('tanggal_mulai', 'tanggal_selesai', 'jumlah_pinjam', 'lama_pinjam', 'total_biaya', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Form submissions send empty strings for untouched inputs."""
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class LoanStatusUpdate(BaseModel):
    """Schema for an admin status transition."""
    status: Optional[str] = Field(None, description="pending, approved or rejected")


class LoanRequestResponse(BaseModel):
    """Schema for loan request response."""
    id: str
    nama_lengkap: str
    nim: str
    jurusan: str
    instansi: str
    barang_id: Optional[str]
    barang: Optional[CatalogItemSummary] = None
    jumlah_pinjam: int
    tanggal_mulai: date
    tanggal_selesai: date
    lama_pinjam: int
    total_biaya: float
    catatan: str
    telepon: str
    email: str
    status: str
    metode_konfirmasi: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LoanStats(BaseModel):
    """Counts over the active loan set, partitioned by status."""
    total: int
    pending: int
    approved: int
    rejected: int
