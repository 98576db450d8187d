from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

import dealmatch.database.db as db
from dealmatch.core.config import get_config
from dealmatch.core.enums import AuditAction, ReviewReason, ReviewStatus, RunStatus
from dealmatch.core.exceptions import ResolutionSetupError
from dealmatch.database.db import build_engine, build_session_factory
from dealmatch.models import Company, Contact, Deal, EntityAudit, ResolutionRun, ReviewRecord
from dealmatch.models.listeners import suspended_listeners
from dealmatch.resolution.batch_runner import BatchRunner, run_resolution_batch, select_candidate_ids
from dealmatch.resolution.contact_resolver import ContactResolver


def _count(session, model) -> int:
    return session.scalar(select(func.count(model.id)))


def _reviews_for(session, deal_id, status=ReviewStatus.PENDING):
    return session.scalars(
        select(ReviewRecord).where(ReviewRecord.deal_id == deal_id, ReviewRecord.status == status.value)
    ).all()


def _deal_links(session):
    session.expire_all()
    return {deal.id: (deal.company_id, deal.primary_contact_id) for deal in session.scalars(select(Deal)).all()}


def test_acme_scenario_creates_company_contact_and_links_deal(session, session_factory, make_deal):
    deal = make_deal(company="Acme Inc", contact_name="Jane Doe", contact_email="jane@acme.com")

    summary = run_resolution_batch()

    assert (summary.processed, summary.succeeded, summary.flagged, summary.errors) == (1, 1, 0, 0)
    company = session.scalars(select(Company)).one()
    contact = session.scalars(select(Contact)).one()
    assert company.domain == "acme.com"
    assert company.name == "Acme Inc"
    assert contact.email == "jane@acme.com"
    assert contact.is_primary is True
    assert (contact.first_name, contact.last_name) == ("Jane", "Doe")
    session.refresh(deal)
    assert (deal.company_id, deal.primary_contact_id) == (company.id, contact.id)
    assert _count(session, ReviewRecord) == 0


def test_missing_email_is_flagged_and_deal_stays_unlinked(session, session_factory, make_deal):
    deal = make_deal(company="Acme Inc", contact_name="Jane Doe", contact_email=None)

    summary = run_resolution_batch()

    assert (summary.processed, summary.succeeded, summary.flagged, summary.errors) == (1, 0, 1, 0)
    review = session.scalars(select(ReviewRecord)).one()
    assert review.reason == ReviewReason.NO_EMAIL.value
    assert review.status == ReviewStatus.PENDING.value
    assert review.original_company == "Acme Inc"
    session.refresh(deal)
    assert deal.company_id is None and deal.primary_contact_id is None


def test_invalid_email_is_flagged(session, session_factory, make_deal):
    make_deal(company="Acme Inc", contact_email="jane at acme")

    run_resolution_batch()

    review = session.scalars(select(ReviewRecord)).one()
    assert review.reason == ReviewReason.INVALID_EMAIL.value
    assert review.original_contact_email == "jane at acme"


def test_domain_blocking_ignores_case_and_never_creates_gmail(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="A", contact_email="a@acme.com")
    make_deal(company="ACME Corp", contact_name="B", contact_email="b@ACME.com")
    make_deal(company="Freelance Studio", contact_name="C", contact_email="c@gmail.com")

    summary = run_resolution_batch()

    assert summary.succeeded == 3
    assert session.scalars(select(Company.domain).where(Company.domain.is_not(None))).all() == ["acme.com"]
    assert session.scalar(select(Company).where(func.lower(Company.name) == "gmail")) is None
    assert session.scalar(select(Company).where(Company.domain == "gmail.com")) is None
    acme_ids = session.scalars(
        select(Deal.company_id).where(Deal.contact_email.in_(["a@acme.com", "b@ACME.com"]))
    ).all()
    assert len(acme_ids) == 2
    assert len(set(acme_ids)) == 1


def test_second_run_is_a_no_op(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="Jane Doe", contact_email="jane@acme.com")
    make_deal(company="Acme", contact_name="John Roe", contact_email="john@acme.com")
    make_deal(company="Initech", contact_name="Pete", contact_email="pete@gmail.com")
    make_deal(company="Nobody", contact_name="No Mail")

    run_resolution_batch()
    first = (_count(session, Company), _count(session, Contact), _deal_links(session))
    session.rollback()
    second_summary = run_resolution_batch()
    second = (_count(session, Company), _count(session, Contact), _deal_links(session))

    assert first == second
    # Only the flagged deal is picked up again, and it stays with one pending review.
    assert second_summary.processed == 1
    assert second_summary.flagged == 1
    assert _count(session, ReviewRecord) == 1


def test_contact_moves_to_newly_resolved_company(session, session_factory, make_deal):
    make_deal(company="Foo Studio", contact_name="Pat Lee", contact_email="pat@gmail.com")
    run_resolution_batch()
    make_deal(company="Bar Agency", contact_name="Pat Lee", contact_email="PAT@gmail.com")

    run_resolution_batch()

    contacts = session.scalars(select(Contact).where(Contact.email == "pat@gmail.com")).all()
    assert len(contacts) == 1
    bar = session.scalars(select(Company).where(Company.name == "Bar Agency")).one()
    assert contacts[0].company_id == bar.id
    relocations = session.scalars(
        select(EntityAudit).where(EntityAudit.action == AuditAction.RELOCATED.value)
    ).all()
    assert len(relocations) == 1


def test_primary_flag_only_for_first_contact(session, session_factory, make_deal):
    make_deal(company="Fresh", contact_name="Ann Lee", contact_email="ann@fresh.io")
    make_deal(company="Fresh", contact_name="Bob Stone", contact_email="bob@fresh.io")

    run_resolution_batch()

    flags = dict(session.execute(select(Contact.email, Contact.is_primary)).all())
    assert flags == {"ann@fresh.io": True, "bob@fresh.io": False}


def test_every_deal_is_either_resolved_or_pending_review(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    make_deal(company="Acme", contact_name="Jane", contact_email=None)
    make_deal(company=None, contact_name="Solo", contact_email="solo@gmail.com")
    make_deal(company="Globex", contact_name="Hank", contact_email="not-an-email")
    make_deal(company="Globex", contact_name="Hank", contact_email="hank@globex.com")

    run_resolution_batch()

    session.expire_all()
    for deal in session.scalars(select(Deal)).all():
        pending = _reviews_for(session, deal.id)
        if deal.company_id is not None and deal.primary_contact_id is not None:
            assert pending == []
        else:
            assert len(pending) == 1


def test_personal_email_without_company_name_is_flagged(session, session_factory, make_deal):
    make_deal(company=None, contact_name="Solo", contact_email="solo@gmail.com")

    summary = run_resolution_batch()

    assert summary.flagged == 1
    assert session.scalars(select(ReviewRecord.reason)).one() == ReviewReason.ENTITY_CREATION_FAILED.value
    assert _count(session, Company) == 0


def test_failing_record_is_isolated(session, session_factory, make_deal, monkeypatch):
    first = make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    broken = make_deal(company="Fail Co", contact_name="Boom", contact_email="boom@fail.com")
    last = make_deal(company="Globex", contact_name="Hank", contact_email="hank@globex.com")
    original = ContactResolver.resolve

    def exploding(self, email, name_hint, company, owner_id):
        if email == "boom@fail.com":
            raise RuntimeError("contacts table is on fire")
        return original(self, email, name_hint, company, owner_id)

    monkeypatch.setattr(ContactResolver, "resolve", exploding)

    summary = run_resolution_batch()

    assert (summary.processed, summary.succeeded, summary.flagged, summary.errors) == (3, 2, 0, 1)
    links = _deal_links(session)
    assert None not in links[first.id]
    assert None not in links[last.id]
    assert links[broken.id] == (None, None)
    review = _reviews_for(session, broken.id)[0]
    assert review.reason == ReviewReason.ENTITY_CREATION_FAILED.value
    assert "contacts table is on fire" in review.details
    # The company created before the failure was rolled back with the record.
    assert session.scalar(select(Company).where(Company.domain == "fail.com")) is None


def test_flagged_deal_resolves_on_later_run_and_review_closes(session, session_factory, make_deal):
    deal = make_deal(company="Acme", contact_name="Jane", contact_email="jane(at)acme.com")
    run_resolution_batch()
    deal.contact_email = "jane@acme.com"
    session.commit()

    summary = run_resolution_batch()

    assert summary.succeeded == 1
    review = session.scalars(select(ReviewRecord).where(ReviewRecord.deal_id == deal.id)).one()
    assert review.status == ReviewStatus.RESOLVED.value
    assert review.resolved_by == "system"
    assert _reviews_for(session, deal.id) == []


def test_dry_run_persists_nothing_but_the_ledger(session, session_factory, make_deal):
    deal = make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    make_deal(company="Acme", contact_name="No Mail")

    summary = run_resolution_batch(dry_run=True)

    assert (summary.succeeded, summary.flagged) == (1, 1)
    assert _count(session, Company) == 0
    assert _count(session, Contact) == 0
    assert _count(session, ReviewRecord) == 0
    session.refresh(deal)
    assert deal.company_id is None
    run = session.scalars(select(ResolutionRun)).one()
    assert run.dry_run is True
    assert run.status == RunStatus.COMPLETED.value


def test_run_ledger_records_counts_and_quality(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    make_deal(company="Acme", contact_name="No Mail")

    summary = run_resolution_batch(limit=10)

    run = session.scalars(select(ResolutionRun).where(ResolutionRun.run_key == summary.run_id)).one()
    assert run.status == RunStatus.COMPLETED.value
    assert (run.processed, run.succeeded, run.flagged, run.errors) == (2, 1, 1, 0)
    assert run.params["limit"] == 10
    assert run.finished_at is not None
    assert summary.quality_before["deals_without_company"] == 2
    assert summary.quality_after["deals_without_company"] == 1
    assert summary.quality_after["pending_reviews"] == 1
    assert run.quality_after == summary.quality_after


def test_candidates_respect_limit_and_min_created_at(session, make_deal):
    make_deal(company="Old", contact_email="old@old.com", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
    recent = make_deal(company="New", contact_email="new@new.com")
    make_deal(company=None, contact_name=" ", contact_email="")

    assert len(select_candidate_ids(session, limit=10)) == 2
    assert len(select_candidate_ids(session, limit=1)) == 1
    assert select_candidate_ids(session, limit=10, min_created_at=datetime(2024, 1, 1)) == [recent.id]


def test_candidates_awaiting_review_sort_last(session, session_factory, make_deal):
    stale = make_deal(company="Acme", contact_name="No Mail", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
    run_resolution_batch()
    fresh = make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")

    assert select_candidate_ids(session, limit=10) == [fresh.id, stale.id]


def test_limited_runs_reach_newer_deals_behind_unresolvable_ones(session, session_factory, make_deal):
    make_deal(company="Old One", contact_name="No Mail", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
    make_deal(company="Old Two", contact_name="No Mail", created_at=datetime(2020, 1, 2, tzinfo=timezone.utc))
    deal = make_deal(company="Acme Inc", contact_name="Jane Doe", contact_email="jane@acme.com")

    first = run_resolution_batch(limit=2)
    second = run_resolution_batch(limit=2)

    assert (first.processed, first.flagged) == (2, 2)
    assert second.succeeded == 1
    session.refresh(deal)
    assert deal.company_id is not None
    assert deal.primary_contact_id is not None


def test_run_without_limit_walks_every_page(session, session_factory, make_deal):
    for index in range(5):
        make_deal(company=f"Co {index}", contact_name="Jane", contact_email=f"jane@co{index}.com")
    config = replace(get_config(), RESOLUTION_BATCH_LIMIT=2)

    summary = BatchRunner(config=config).run()

    assert (summary.processed, summary.succeeded) == (5, 5)
    assert _count(session, Company) == 5
    run = session.scalars(select(ResolutionRun)).one()
    assert run.params["limit"] is None
    assert run.params["page_size"] == 2


def test_uncertain_fuzzy_match_is_flagged_with_suggestions(
    session, session_factory, make_deal, make_company, make_contact
):
    acme = make_company("Acme", domain="acme.com")
    jon = make_contact("Jon", "jon@acme.com", acme, last_name="Smith", is_primary=True)
    deal = make_deal(company="Acme", contact_name="J. Smyth", contact_email="jsmyth@acme.com")
    config = replace(get_config(), RESOLUTION_UNCERTAINTY_FLOOR=0.6)

    summary = BatchRunner(config=config).run()

    assert (summary.processed, summary.succeeded, summary.flagged, summary.errors) == (1, 0, 1, 0)
    review = _reviews_for(session, deal.id)[0]
    assert review.reason == ReviewReason.FUZZY_MATCH_UNCERTAINTY.value
    assert review.suggested_company_id == acme.id
    assert review.suggested_contact_id == jon.id
    session.refresh(deal)
    assert (deal.company_id, deal.primary_contact_id) == (None, None)
    assert _count(session, Contact) == 1


def _audit_rows(session):
    return set(
        session.execute(
            select(EntityAudit.id, EntityAudit.entity_type, EntityAudit.entity_id, EntityAudit.action)
        ).all()
    )


def test_maintenance_mode_suppresses_audit_rows_and_is_restored(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    before = _audit_rows(session)
    session.rollback()

    run_resolution_batch(maintenance=True)

    assert suspended_listeners() == frozenset()
    assert _audit_rows(session) == before


def test_audit_rows_are_written_without_maintenance_mode(session, session_factory, make_deal):
    make_deal(company="Acme", contact_name="Jane", contact_email="jane@acme.com")
    before = _audit_rows(session)
    session.rollback()

    run_resolution_batch(maintenance=False)

    added = _audit_rows(session) - before
    assert {entity_type for _, entity_type, _, _ in added} == {"company", "contact", "deal"}
    assert ("deal", AuditAction.UPDATED.value) in {(entity_type, action) for _, entity_type, _, action in added}


def test_missing_tables_abort_before_any_record(tmp_path, monkeypatch):
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}", echo=False)
    monkeypatch.setattr(db, "SessionLocal", build_session_factory(engine))

    with pytest.raises(ResolutionSetupError, match="Missing required tables"):
        BatchRunner().run()
    engine.dispose()
