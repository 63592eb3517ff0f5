"""
Global pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database; API tests reach it
through a dependency override on ``get_database``.
"""

import os
from datetime import datetime, timedelta

# Must be set before the application modules build their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEPER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from catalog.models import CatalogItemCreate
from catalog.service import CatalogService
from loan_history.service import LoanHistoryService
from loan_requests.models import LoanRequestCreate
from loan_requests.service import LoanRequestService
from main import app
from shared.database import DatabaseManager, get_database


class FakeClock:
    """Deterministic clock; each call can optionally step forward."""

    def __init__(self, start: datetime = None, step: timedelta = timedelta(0)):
        self.now = start or datetime(2024, 1, 1, 8, 0, 0)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def db_manager():
    """Fresh in-memory database with all tables."""
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


@pytest.fixture
def client(db_manager):
    """Test client wired to the per-test database."""
    app.dependency_overrides[get_database] = lambda: db_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def catalog_item(db_manager):
    """A tent priced at 25000 per day."""
    return CatalogService(db_manager).create(CatalogItemCreate(
        nama="Tenda Dome 4 Orang",
        kategori="outdoor",
        harga=25000,
        stok=5,
        deskripsi="Tenda kapasitas 4 orang",
        maks_peminjaman="7 hari",
        gambar=["https://example.com/tenda.jpg"],
    ))


@pytest.fixture
def loan_payload(catalog_item):
    """Valid loan request body for the tent."""
    return {
        "nama_lengkap": "Budi Santoso",
        "nim": "2021001",
        "jurusan": "Teknik Informatika",
        "instansi": "Universitas Contoh",
        "barang_id": catalog_item.id,
        "jumlah_pinjam": 1,
        "tanggal_mulai": "2024-01-01",
        "tanggal_selesai": "2024-01-03",
        "telepon": "+628123456789",
        "email": "budi@example.com",
    }


@pytest.fixture
def loan_service(db_manager):
    return LoanRequestService(db_manager)


@pytest.fixture
def history_service(db_manager):
    return LoanHistoryService(db_manager)


@pytest.fixture
def create_loan(loan_service, loan_payload):
    """Factory creating loans through the service, with field overrides."""
    def _create(service=None, **overrides):
        data = {**loan_payload, **overrides}
        return (service or loan_service).create(LoanRequestCreate(**data))
    return _create


# Configure test markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as exercising the HTTP layer"
    )
    config.addinivalue_line(
        "markers", "workflow: mark test as end-to-end workflow test"
    )
