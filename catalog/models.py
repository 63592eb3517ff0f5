"""
Catalog Pydantic models for request/response validation.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ItemStatus(str, Enum):
    """Catalog item availability."""
    TERSEDIA = "tersedia"
    TIDAK_TERSEDIA = "tidak_tersedia"


class CatalogItemCreate(BaseModel):
    """Schema for creating a catalog item. Required fields are checked by the service."""
    model_config = ConfigDict(populate_by_name=True)

    nama: Optional[str] = Field(None, max_length=255)
    kategori: Optional[str] = Field(None, max_length=100)
    status: Optional[ItemStatus] = None
    harga: Optional[float] = Field(None, description="Price per day in Rupiah")
    stok: Optional[int] = None
    maks_peminjaman: Optional[str] = Field(None, alias="maksPeminjaman", description='e.g. "7 hari"')
    kualitas: Optional[str] = None
    deskripsi: Optional[str] = None
    lokasi: Optional[str] = None
    spesifikasi: Optional[Union[List[str], str]] = None
    gambar: Optional[List[str]] = None


class CatalogItemUpdate(CatalogItemCreate):
    """Schema for a partial catalog update; omitted fields are left unchanged."""


class CatalogItemResponse(BaseModel):
    """Schema for catalog item response."""
    id: str
    nama: str
    kategori: str
    status: str
    harga: float
    stok: int
    maks_peminjaman: Optional[str]
    kualitas: str
    deskripsi: Optional[str]
    lokasi: str
    spesifikasi: List[str]
    gambar: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CatalogItemSummary(BaseModel):
    """Item fields embedded in loan responses."""
    id: str
    nama: str
    kategori: str
    status: str
    harga: float
    stok: int
    gambar: List[str]

    model_config = {"from_attributes": True}
