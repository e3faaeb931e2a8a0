"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- In-memory SQLite session and transcript store
- Team-owned product, ICP and campaign records
"""

import json
import os
from collections.abc import Generator

# Keep the app's module-level engine off the on-disk default database.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from messageai.db.models import Base, Campaign, IdealCustomerProfile, Product
from messageai.services.transcript_store import TranscriptStore
from tests.helpers.ids import TEAM_ID


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Create an in-memory SQLite database shared across threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db_session: Session) -> TranscriptStore:
    return TranscriptStore(db_session)


@pytest.fixture
def product(db_session: Session) -> Product:
    """Product owned by TEAM_ID."""
    product = Product(
        team_id=TEAM_ID,
        name="Acme CRM",
        description="CRM for small sales teams",
        features_json=json.dumps(["pipeline", "email sync"]),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def icp(db_session: Session, product: Product) -> IdealCustomerProfile:
    """B2B ICP for the product with demographics and firmographics."""
    icp = IdealCustomerProfile(
        product_id=product.id,
        team_id=TEAM_ID,
        name="Sales managers at SMBs",
        demographics_json=json.dumps({"age_range": "30-45", "job_titles": ["Sales Manager"]}),
        firmographics_json=json.dumps({"company_size": "10-50", "industry": ["SaaS"]}),
    )
    db_session.add(icp)
    db_session.commit()
    return icp


@pytest.fixture
def campaign(db_session: Session, product: Product, icp: IdealCustomerProfile) -> Campaign:
    campaign = Campaign(
        team_id=TEAM_ID,
        name="Spring launch",
        product_id=product.id,
        icp_id=icp.id,
        platforms_json=json.dumps(["linkedin", "facebook"]),
        objective="lead generation",
        budget=5000.0,
        start_date="2026-03-01",
    )
    db_session.add(campaign)
    db_session.commit()
    return campaign
