"""
Unit tests for database models and connection management.
"""

import os
import tempfile
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from shared.database import (
    Base,
    CatalogItemModel,
    DatabaseManager,
    LoanRequestModel,
    TimelineEventModel,
)
from shared.exceptions import StoreError


@pytest.fixture
def temp_db_path():
    """Create a temporary database file for testing."""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    yield f"sqlite:///{path}"
    try:
        os.unlink(path)
    except OSError:
        pass


@pytest.fixture
def test_db_manager(temp_db_path):
    """Create a test database manager."""
    manager = DatabaseManager(temp_db_path)
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


def make_loan(**overrides):
    fields = dict(
        nama_lengkap="Budi Santoso",
        nim="2021001",
        barang_id=None,
        tanggal_mulai=date(2024, 1, 1),
        tanggal_selesai=date(2024, 1, 3),
        telepon="+628123456789",
    )
    fields.update(overrides)
    return LoanRequestModel(**fields)


class TestDatabaseManager:
    """Test DatabaseManager class."""

    def test_database_manager_initialization(self, temp_db_path):
        """Test database manager initialization."""
        manager = DatabaseManager(temp_db_path)

        assert manager.database_url == temp_db_path
        assert manager.engine is not None
        assert manager.SessionLocal is not None
        manager.dispose()

    def test_create_tables(self, test_db_manager):
        """Test table creation."""
        table_names = [table.name for table in Base.metadata.tables.values()]

        expected_tables = [
            'katalog', 'peminjaman', 'riwayat_peminjaman',
            'peminjaman_timeline', 'faqs', 'contact_info'
        ]

        for table_name in expected_tables:
            assert table_name in table_names

    def test_session_scope(self, test_db_manager):
        """Test session scope context manager."""
        with test_db_manager.session_scope() as session:
            result = session.execute(text("SELECT 1")).scalar()
            assert result == 1

    def test_session_scope_rollback(self, test_db_manager):
        """Test session scope rollback on exception."""
        with pytest.raises(ValueError):
            with test_db_manager.session_scope() as session:
                loan = make_loan(id="test_rollback")
                session.add(loan)
                session.flush()

                raise ValueError("Test exception")

        with test_db_manager.session_scope() as session:
            assert session.get(LoanRequestModel, "test_rollback") is None

    def test_transaction_wraps_store_errors(self, test_db_manager):
        """SQLAlchemy errors surface as StoreError carrying the operation name."""
        with pytest.raises(StoreError) as exc_info:
            with test_db_manager.transaction("broken_query", "loan-1") as session:
                session.execute(text("SELECT * FROM no_such_table"))

        assert exc_info.value.operation == "broken_query"
        assert exc_info.value.entity_id == "loan-1"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_transaction_passes_domain_errors_through(self, test_db_manager):
        with pytest.raises(KeyError):
            with test_db_manager.transaction("lookup"):
                raise KeyError("missing")

    def test_health_check(self, test_db_manager):
        """Test database health check."""
        assert test_db_manager.health_check() is True

    def test_health_check_failure(self):
        """Test database health check failure."""
        manager = DatabaseManager("sqlite:///nonexistent/path/db.sqlite")
        assert manager.health_check() is False


class TestModels:
    """Defaults and relationships of the ORM models."""

    def test_loan_defaults(self, test_db_manager):
        with test_db_manager.session_scope() as session:
            loan = make_loan()
            session.add(loan)
            session.flush()

            assert len(loan.id) == 36
            assert loan.status == "pending"
            assert loan.jumlah_pinjam == 1
            assert loan.metode_konfirmasi == "whatsapp"
            assert loan.created_at is not None

    def test_loan_item_left_join(self, test_db_manager):
        with test_db_manager.session_scope() as session:
            item = CatalogItemModel(nama="Kompor Portable", harga=15000, stok=2)
            session.add(item)
            session.flush()
            session.add(make_loan(id="with-item", barang_id=item.id))
            session.add(make_loan(id="without-item", barang_id="gone"))

        with test_db_manager.session_scope() as session:
            assert session.get(LoanRequestModel, "with-item").barang.nama == "Kompor Portable"
            assert session.get(LoanRequestModel, "without-item").barang is None

    def test_catalog_defaults(self, test_db_manager):
        with test_db_manager.session_scope() as session:
            item = CatalogItemModel(nama="Sleeping Bag", harga=10000, stok=4)
            session.add(item)
            session.flush()

            assert item.kategori == "outdoor"
            assert item.status == "tersedia"
            assert item.spesifikasi == []
            assert item.gambar == []

    def test_timeline_ids_increase(self, test_db_manager):
        with test_db_manager.session_scope() as session:
            first = TimelineEventModel(peminjaman_id="loan-1", status="pending")
            second = TimelineEventModel(peminjaman_id="loan-1")
            session.add_all([first, second])
            session.flush()

            assert second.id > first.id
            assert second.status is None
            assert second.catatan == ""

    def test_repr(self):
        loan = make_loan(id="loan-1", status="approved")

        assert repr(loan) == "<LoanRequestModel(id='loan-1', status='approved')>"


class TestHealthEndpoint:

    def test_health_reports_database(self, client):
        response = client.get("/health")

        assert response.json() == {"status": "healthy", "database": True}

    def test_health_reports_failure(self, client, db_manager):
        with patch.object(db_manager, "health_check", return_value=False):
            response = client.get("/health")

        assert response.json()["status"] == "unhealthy"
