"""
Catalog API endpoints.

Public reads for the browsing frontend and admin writes for the back office.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from shared.database import DatabaseManager, get_database
from shared.responses import success_response

from .models import CatalogItemCreate, CatalogItemUpdate
from .service import CatalogService

router = APIRouter()


def get_catalog_service(db: DatabaseManager = Depends(get_database)) -> CatalogService:
    return CatalogService(db)


@router.get("")
async def list_catalog(
    search: Optional[str] = None,
    kategori: Optional[str] = None,
    status: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service)
):
    """List catalog items, newest first."""
    items = service.list(search=search, kategori=kategori, status=status)
    return success_response(items, count=len(items))


@router.get("/{item_id}")
async def get_catalog_item(item_id: str, service: CatalogService = Depends(get_catalog_service)):
    return success_response(service.get(item_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_catalog_item(
    payload: CatalogItemCreate,
    service: CatalogService = Depends(get_catalog_service)
):
    item = service.create(payload)
    return success_response(item, "Catalog item created")


@router.put("/{item_id}")
async def update_catalog_item(
    item_id: str,
    payload: CatalogItemUpdate,
    service: CatalogService = Depends(get_catalog_service)
):
    item = service.update(item_id, payload)
    return success_response(item, "Catalog item updated")


@router.patch("/{item_id}/toggle-status")
async def toggle_catalog_status(item_id: str, service: CatalogService = Depends(get_catalog_service)):
    item = service.toggle_status(item_id)
    label = "available" if item.status == "tersedia" else "unavailable"
    return success_response(item, f"Item is now {label}")


@router.delete("/{item_id}")
async def delete_catalog_item(item_id: str, service: CatalogService = Depends(get_catalog_service)):
    service.delete(item_id)
    return success_response(message="Catalog item deleted")
