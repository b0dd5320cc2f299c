"""
Shared fixtures for closure tests.

Integration tests run against an in-memory SQLite database shared by every
session (StaticPool), so the background document runner sees the same rows
as the request that enqueued its job.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import db_models  # noqa: F401
from app.models.db_models import (
    ActivityDB,
    AlertStatus,
    CampaignAlertDB,
    CampaignContractDB,
    CampaignDB,
    CampaignStatus,
    DonationDB,
    DonationStatus,
    OrganizerDB,
    ReceiptDB,
)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; take over so SAVEPOINTs nest correctly
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# SEED HELPERS
# =============================================================================

@pytest.fixture
def fixed_now():
    """Fixed naive-UTC clock for deterministic closures."""
    return datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def seed_campaign(db, fixed_now):
    """Factory: organizer + campaign, returns campaign id."""

    def _seed(
        status=CampaignStatus.ACTIVE,
        goal=1000.0,
        organizer_name="Fundacion Sonrisas",
        start_date=None,
        end_date=None,
    ):
        organizer_id = str(uuid4())
        campaign_id = str(uuid4())
        db.add(OrganizerDB(id=organizer_id, name=organizer_name, email="org@example.com"))
        db.add(CampaignDB(
            id=campaign_id,
            title="Comedor Infantil",
            description="Almuerzos para 50 chicos",
            goal=goal,
            organizer_id=organizer_id,
            status=status.value,
            start_date=start_date or fixed_now - timedelta(days=90),
            end_date=end_date or fixed_now + timedelta(days=30),
        ))
        db.commit()
        return campaign_id

    return _seed


@pytest.fixture
def add_donation(db):
    def _add(campaign_id, amount, donor_id=None, status=DonationStatus.COMPLETED):
        db.add(DonationDB(
            id=str(uuid4()),
            campaign_id=campaign_id,
            donor_id=donor_id or str(uuid4()),
            amount=amount,
            status=status.value,
        ))
        db.commit()

    return _add


@pytest.fixture
def add_receipt(db, fixed_now):
    def _add(campaign_id, total, document_url="https://files.example.com/r.pdf", date=None, provider="Mayorista Sur"):
        db.add(ReceiptDB(
            id=str(uuid4()),
            campaign_id=campaign_id,
            provider=provider,
            name="Alimentos",
            total=total,
            date=date or fixed_now - timedelta(days=10),
            document_url=document_url,
        ))
        db.commit()

    return _add


@pytest.fixture
def add_activity(db):
    def _add(campaign_id, date, title="Entrega de viandas", type="update"):
        db.add(ActivityDB(id=str(uuid4()), campaign_id=campaign_id, title=title, type=type, date=date))
        db.commit()

    return _add


@pytest.fixture
def add_alert(db):
    def _add(campaign_id, status=AlertStatus.PENDING):
        db.add(CampaignAlertDB(
            id=str(uuid4()),
            campaign_id=campaign_id,
            alert_type="suspicious_expense",
            description="Gasto sin comprobante",
            status=status.value,
        ))
        db.commit()

    return _add


@pytest.fixture
def add_contract(db, fixed_now):
    def _add(campaign_id):
        campaign = db.query(CampaignDB).filter(CampaignDB.id == campaign_id).first()
        db.add(CampaignContractDB(
            id=str(uuid4()),
            campaign_id=campaign_id,
            organizer_id=campaign.organizer_id,
            contract_pdf_url="https://files.example.com/contract.pdf",
            contract_hash="0" * 64,
            accepted_at=fixed_now - timedelta(days=95),
        ))
        db.commit()

    return _add


# =============================================================================
# FAKE BLOB STORE
# =============================================================================

class FakeBlobStore:
    """In-memory blob store recording every upload."""

    def __init__(self, fail_times: int = 0):
        self.uploads = {}
        self.fail_times = fail_times
        self.calls = 0

    def upload(self, content: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        self.calls += 1
        if self.calls <= self.fail_times:
            raise ConnectionError("blob store unavailable")
        self.uploads[key] = (content, content_type)
        return f"https://dona-tutti-files.s3.amazonaws.com/{key}"


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def failing_blob_store():
    """Blob store whose every upload fails."""
    return FakeBlobStore(fail_times=1000)


@pytest.fixture
def flaky_blob_store():
    """Blob store that fails once, then recovers."""
    return FakeBlobStore(fail_times=1)
