"""
Loan history Pydantic models for request/response validation.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FinalStatus(str, Enum):
    """How an archived loan ended."""
    SELESAI = "selesai"
    DIBATALKAN = "dibatalkan"


class ReturnCondition(str, Enum):
    """Condition of the item when it came back."""
    BAIK = "baik"
    RUSAK_RINGAN = "rusak_ringan"
    RUSAK_BERAT = "rusak_berat"


MISSING_ITEM_NAME = "Barang tidak tersedia"


class CompleteLoanRequest(BaseModel):
    """Body of the archival endpoint (camelCase, as the admin frontend sends it)."""
    loanId: Optional[str] = None
    returnCondition: Optional[str] = Field(None, description="baik, rusak_ringan or rusak_berat")
    adminNotes: Optional[str] = None
    fine: Optional[float] = Field(None, description="Late/damage fine in Rupiah")
    finalStatus: Optional[str] = Field(None, description="selesai or dibatalkan")


class TimelineAppendRequest(BaseModel):
    loanId: Optional[str] = None
    status: Optional[str] = None
    note: Optional[str] = None


class TimelineEventResponse(BaseModel):
    """Schema for a timeline event."""
    id: int
    peminjaman_id: str
    status: Optional[str]
    catatan: str
    created_at: datetime

    model_config = {"from_attributes": True}


class HistoryRecordResponse(BaseModel):
    """Schema for an archived loan."""
    id: str
    peminjaman_id: str
    nama_lengkap: str
    nim: str
    jurusan: Optional[str]
    instansi: Optional[str]
    barang_nama: str
    barang_gambar: Optional[List[str]]
    barang_harga: Optional[float]
    jumlah_pinjam: int
    tanggal_mulai: date
    tanggal_selesai: date
    lama_pinjam: int
    total_biaya: float
    catatan: Optional[str]
    telepon: str
    email: Optional[str]
    status_akhir: str
    kondisi_kembali: str
    denda: float
    catatan_admin: str
    completed_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class HistoryStats(BaseModel):
    """Aggregates over the whole history table."""
    totalLoans: int
    totalRevenue: float
    totalFines: float
    completedCount: int
    cancelledCount: int


class DuplicateArchival(BaseModel):
    """A loan id found in both the active and the history table."""
    loan_id: str
    history_id: str
    nama_lengkap: str
    status: str
