"""
Catalog management: the items requesters can borrow.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_
import structlog

from shared.database import CatalogItemModel, DatabaseManager, utcnow
from shared.exceptions import NotFoundError, ValidationError
from shared.validation import LIKE_ESCAPE, contains_pattern, is_blank, require_fields

from .models import CatalogItemCreate, CatalogItemResponse, CatalogItemUpdate, ItemStatus

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("nama", "harga", "stok", "deskripsi", "maks_peminjaman")
NULLABLE_FIELDS = {"deskripsi", "maks_peminjaman"}


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _check_numbers(data: Dict[str, Any]) -> None:
    if data.get("harga") is not None and data["harga"] < 0:
        raise ValidationError("Price must be a valid non-negative number", {"field": "harga"})
    if data.get("stok") is not None and data["stok"] < 0:
        raise ValidationError("Stock must be a valid non-negative integer", {"field": "stok"})


class CatalogService:
    """CRUD operations over the ``katalog`` table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def list(
        self,
        search: Optional[str] = None,
        kategori: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[CatalogItemResponse]:
        with self.db.transaction("list_catalog") as session:
            query = session.query(CatalogItemModel)
            if search:
                pattern = contains_pattern(search)
                query = query.filter(or_(
                    CatalogItemModel.nama.ilike(pattern, escape=LIKE_ESCAPE),
                    CatalogItemModel.deskripsi.ilike(pattern, escape=LIKE_ESCAPE)
                ))
            if kategori:
                query = query.filter(CatalogItemModel.kategori == kategori)
            if status:
                query = query.filter(CatalogItemModel.status == status)
            items = query.order_by(CatalogItemModel.created_at.desc()).all()
            return [CatalogItemResponse.model_validate(item) for item in items]

    def get(self, item_id: str) -> CatalogItemResponse:
        with self.db.transaction("get_catalog_item", item_id) as session:
            item = session.get(CatalogItemModel, item_id)
            if not item:
                raise NotFoundError("Catalog item", item_id)
            return CatalogItemResponse.model_validate(item)

    def create(self, payload: CatalogItemCreate) -> CatalogItemResponse:
        data = payload.model_dump()
        require_fields(
            data,
            REQUIRED_FIELDS,
            "Fields nama, harga, stok, deskripsi and maksPeminjaman are required"
        )
        _check_numbers(data)

        item = CatalogItemModel(
            nama=data["nama"].strip(),
            kategori=data["kategori"] or "outdoor",
            status=(data["status"] or ItemStatus.TERSEDIA).value,
            harga=data["harga"],
            stok=data["stok"],
            maks_peminjaman=data["maks_peminjaman"],
            kualitas=data["kualitas"] or "Bagus",
            deskripsi=data["deskripsi"],
            lokasi=data["lokasi"] or "Gudang Utama",
            spesifikasi=_as_list(data["spesifikasi"]),
            gambar=data["gambar"] or [],
        )
        with self.db.transaction("create_catalog_item") as session:
            session.add(item)
            session.flush()
            result = CatalogItemResponse.model_validate(item)

        logger.info("Catalog item created", item_id=result.id, nama=result.nama)
        return result

    def update(self, item_id: str, payload: CatalogItemUpdate) -> CatalogItemResponse:
        changes = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        _check_numbers(changes)
        if "nama" in changes and is_blank(changes["nama"]):
            raise ValidationError("Item name cannot be empty", {"field": "nama"})

        with self.db.transaction("update_catalog_item", item_id) as session:
            item = session.get(CatalogItemModel, item_id)
            if not item:
                raise NotFoundError("Catalog item", item_id)

            for field, value in changes.items():
                if field == "spesifikasi":
                    value = _as_list(value)
                elif field == "status" and value is not None:
                    value = ItemStatus(value).value
                setattr(item, field, value)
            item.updated_at = utcnow()
            session.flush()
            result = CatalogItemResponse.model_validate(item)

        logger.info("Catalog item updated", item_id=item_id, fields=sorted(changes))
        return result

    def toggle_status(self, item_id: str) -> CatalogItemResponse:
        with self.db.transaction("toggle_catalog_status", item_id) as session:
            item = session.get(CatalogItemModel, item_id)
            if not item:
                raise NotFoundError("Catalog item", item_id)
            item.status = (
                ItemStatus.TIDAK_TERSEDIA.value
                if item.status == ItemStatus.TERSEDIA.value
                else ItemStatus.TERSEDIA.value
            )
            item.updated_at = utcnow()
            session.flush()
            result = CatalogItemResponse.model_validate(item)

        logger.info("Catalog item status toggled", item_id=item_id, status=result.status)
        return result

    def delete(self, item_id: str) -> None:
        with self.db.transaction("delete_catalog_item", item_id) as session:
            item = session.get(CatalogItemModel, item_id)
            if not item:
                raise NotFoundError("Catalog item", item_id)
            session.delete(item)
        logger.info("Catalog item deleted", item_id=item_id)
