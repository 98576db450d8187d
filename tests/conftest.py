from __future__ import annotations

import os

# Must be set before dealmatch reads its configuration.
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_CONNECTIVITY_REQUIRED", "false")

import pytest

import dealmatch.database.db as db
from dealmatch.database.db import build_engine, build_session_factory
from dealmatch.models import Base, Company, Contact, Deal


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'dealmatch_test.db'}", echo=False)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    TestingSessionLocal = build_session_factory(engine)
    # Components that open their own sessions go through db.SessionLocal.
    monkeypatch.setattr(db, "SessionLocal", TestingSessionLocal)
    return TestingSessionLocal


@pytest.fixture
def session(session_factory):
    # Reading ids after commit must not open a transaction that holds the SQLite
    # file lock while another session writes.
    session = session_factory(expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def make_deal(session):
    def _make_deal(company=None, contact_name=None, contact_email=None, owner_id=1, **fields):
        deal = Deal(
            company=company,
            contact_name=contact_name,
            contact_email=contact_email,
            owner_id=owner_id,
            **fields,
        )
        session.add(deal)
        session.commit()
        return deal

    return _make_deal


@pytest.fixture
def make_company(session):
    def _make_company(name, domain=None, owner_id=1):
        company = Company(name=name, domain=domain, owner_id=owner_id)
        session.add(company)
        session.commit()
        return company

    return _make_company


@pytest.fixture
def make_contact(session):
    def _make_contact(first_name, email, company, last_name=None, is_primary=False, **fields):
        contact = Contact(
            first_name=first_name,
            last_name=last_name,
            email=email,
            company_id=company.id,
            owner_id=company.owner_id,
            is_primary=is_primary,
            **fields,
        )
        session.add(contact)
        session.commit()
        return contact

    return _make_contact
