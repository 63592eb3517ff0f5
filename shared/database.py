"""
Database models and connection management for the equipment loan service.

This module provides SQLAlchemy ORM models for the catalog, active loan
requests, the loan history archive, the loan timeline, FAQs and contact
settings, along with database session management.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional
from contextlib import contextmanager

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Boolean,
    Text,
    Float,
    ForeignKey,
    JSON,
    Index,
    text
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session, relationship
from sqlalchemy.pool import StaticPool
import structlog

from .config import settings
from .exceptions import StoreError

logger = structlog.get_logger(__name__)

# SQLAlchemy base class
Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form SQLite stores)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_id() -> str:
    """Generate an opaque unique record id."""
    return str(uuid.uuid4())


class CatalogItemModel(Base):
    """Catalog item that can be borrowed."""

    __tablename__ = "katalog"

    id = Column(String(36), primary_key=True, default=generate_id)
    nama = Column(String(255), nullable=False)
    kategori = Column(String(100), nullable=False, default="outdoor")
    status = Column(String(50), nullable=False, default="tersedia")  # tersedia, tidak_tersedia
    harga = Column(Float, nullable=False, default=0)  # Price per day, in Rupiah
    stok = Column(Integer, nullable=False, default=0)
    maks_peminjaman = Column(String(100), nullable=True)  # e.g. "7 hari"
    kualitas = Column(String(100), nullable=False, default="Bagus")
    deskripsi = Column(Text, nullable=True)
    lokasi = Column(String(255), nullable=False, default="Gudang Utama")
    spesifikasi = Column(JSON, nullable=False, default=list)
    gambar = Column(JSON, nullable=False, default=list)  # Image URLs
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_katalog_kategori', 'kategori'),
        Index('idx_katalog_status', 'status'),
        Index('idx_katalog_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<CatalogItemModel(id='{self.id}', nama='{self.nama}')>"


class LoanRequestModel(Base):
    """Active loan request ("peminjaman")."""

    __tablename__ = "peminjaman"

    id = Column(String(36), primary_key=True, default=generate_id)
    nama_lengkap = Column(String(255), nullable=False)
    nim = Column(String(100), nullable=False)
    jurusan = Column(String(255), nullable=False, default="")
    instansi = Column(String(255), nullable=False, default="")
    barang_id = Column(String(36), ForeignKey('katalog.id', ondelete="SET NULL"), nullable=True)
    jumlah_pinjam = Column(Integer, nullable=False, default=1)
    tanggal_mulai = Column(Date, nullable=False)
    tanggal_selesai = Column(Date, nullable=False)
    lama_pinjam = Column(Integer, nullable=False, default=1)
    total_biaya = Column(Float, nullable=False, default=0)
    catatan = Column(Text, nullable=False, default="")
    telepon = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False, default="")
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    metode_konfirmasi = Column(String(50), nullable=False, default="whatsapp")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    barang = relationship("CatalogItemModel", lazy="joined")

    __table_args__ = (
        Index('idx_peminjaman_status_updated', 'status', 'updated_at'),
        Index('idx_peminjaman_created_at', 'created_at'),
        Index('idx_peminjaman_barang', 'barang_id'),
    )

    def __repr__(self):
        return f"<LoanRequestModel(id='{self.id}', status='{self.status}')>"


class LoanHistoryModel(Base):
    """Immutable snapshot of an archived loan ("riwayat_peminjaman")."""

    __tablename__ = "riwayat_peminjaman"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Not a foreign key: the active row is deleted on archival
    peminjaman_id = Column(String(36), unique=True, index=True, nullable=False)
    nama_lengkap = Column(String(255), nullable=False)
    nim = Column(String(100), nullable=False)
    jurusan = Column(String(255), nullable=True)
    instansi = Column(String(255), nullable=True)
    barang_nama = Column(String(255), nullable=False)
    barang_gambar = Column(JSON, nullable=True)
    barang_harga = Column(Float, nullable=True)
    jumlah_pinjam = Column(Integer, nullable=False)
    tanggal_mulai = Column(Date, nullable=False)
    tanggal_selesai = Column(Date, nullable=False)
    lama_pinjam = Column(Integer, nullable=False)
    total_biaya = Column(Float, nullable=False, default=0)
    catatan = Column(Text, nullable=True)
    telepon = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    status_akhir = Column(String(20), nullable=False, default="selesai")  # selesai, dibatalkan
    kondisi_kembali = Column(String(20), nullable=False, default="baik")  # baik, rusak_ringan, rusak_berat
    denda = Column(Float, nullable=False, default=0)
    catatan_admin = Column(Text, nullable=False, default="")
    completed_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_riwayat_created_at', 'created_at'),
        Index('idx_riwayat_status_akhir', 'status_akhir'),
        Index('idx_riwayat_kondisi', 'kondisi_kembali'),
    )

    def __repr__(self):
        return f"<LoanHistoryModel(peminjaman_id='{self.peminjaman_id}', status_akhir='{self.status_akhir}')>"


class TimelineEventModel(Base):
    """Append-only audit entry for a loan ("peminjaman_timeline")."""

    __tablename__ = "peminjaman_timeline"

    id = Column(Integer, primary_key=True, autoincrement=True)
    peminjaman_id = Column(String(36), nullable=False)
    status = Column(String(50), nullable=True)
    catatan = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_timeline_loan_created', 'peminjaman_id', 'created_at'),
    )

    def __repr__(self):
        return f"<TimelineEventModel(peminjaman_id='{self.peminjaman_id}', status='{self.status}')>"


class FaqModel(Base):
    """Frequently asked question shown on the public site."""

    __tablename__ = "faqs"

    id = Column(String(36), primary_key=True, default=generate_id)
    question = Column(String(500), nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, default="General")
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(100), nullable=False, default="admin")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_faq_category_active', 'category', 'is_active'),
    )

    def __repr__(self):
        return f"<FaqModel(id='{self.id}', category='{self.category}')>"


class ContactInfoModel(Base):
    """Contact settings; a single row keyed ``primary``."""

    __tablename__ = "contact_info"

    id = Column(String(50), primary_key=True, default="primary")
    phone_number = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<ContactInfoModel(id='{self.id}')>"


class DatabaseManager:
    """Database connection and session management."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database manager."""
        self.database_url = database_url or settings.DATABASE_URL
        self.engine = None
        self.SessionLocal = None
        self._setup_database()

    def _setup_database(self):
        """Setup database engine and session factory."""
        try:
            if self.database_url.startswith("sqlite"):
                # SQLite specific configuration
                self.engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False
                )
            else:
                # PostgreSQL configuration
                self.engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False
                )

            # expire_on_commit=False keeps returned rows readable after the scope closes
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )

            logger.info("Database connection established", database_url=self._safe_url())

        except Exception as e:
            logger.error("Failed to setup database", error=str(e))
            raise

    def _safe_url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True) if self.engine else self.database_url

    def create_tables(self):
        """Create all database tables."""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error("Failed to create database tables", error=str(e))
            raise

    def drop_tables(self):
        """Drop all database tables."""
        try:
            Base.metadata.drop_all(bind=self.engine)
            logger.info("Database tables dropped successfully")
        except Exception as e:
            logger.error("Failed to drop database tables", error=str(e))
            raise

    def get_session(self) -> Session:
        """Get a new database session."""
        if not self.SessionLocal:
            raise RuntimeError("Database not initialized")
        return self.SessionLocal()

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self, operation: str, entity_id: Optional[str] = None):
        """
        session_scope() that reports store failures as StoreError.

        Domain errors raised inside the block still roll back and propagate
        unchanged.
        """
        try:
            with self.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Database operation failed",
                         operation=operation,
                         entity_id=entity_id,
                         error=str(e))
            raise StoreError(operation, f"Database operation '{operation}' failed", entity_id) from e

    def health_check(self) -> bool:
        """Check database connection health."""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    def dispose(self):
        if self.engine:
            self.engine.dispose()


# Global database manager instance
db_manager = DatabaseManager()


def get_database() -> DatabaseManager:
    """Get the global database manager instance."""
    return db_manager


def init_database():
    """Initialize database tables."""
    db_manager.create_tables()


def cleanup_database():
    """Cleanup database resources."""
    db_manager.dispose()
