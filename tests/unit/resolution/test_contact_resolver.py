from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select

from dealmatch.core.enums import AuditAction
from dealmatch.models import Contact, EntityAudit
from dealmatch.resolution.contact_resolver import ContactOutcome, ContactResolver, split_name


def _contacts_with_email(session, email):
    return session.scalars(select(Contact).where(func.lower(Contact.email) == email)).all()


def test_email_match_within_company_is_returned(session, make_company, make_contact):
    acme = make_company("Acme", domain="acme.com")
    jane = make_contact("Jane", "jane@acme.com", acme, last_name="Doe")

    match = ContactResolver(session).resolve("JANE@acme.com", "Someone Else", acme, owner_id=1)

    assert match.outcome is ContactOutcome.EMAIL_IN_COMPANY
    assert match.contact.id == jane.id


def test_email_found_elsewhere_relocates_instead_of_duplicating(session, make_company, make_contact):
    company_a = make_company("A Corp", domain="a.com")
    company_b = make_company("B Corp", domain="b.com")
    contact = make_contact("Xavier", "x@y.com", company_a, is_primary=True)

    match = ContactResolver(session).resolve("x@y.com", "Xavier", company_b, owner_id=1)
    session.commit()

    assert match.outcome is ContactOutcome.RELOCATED
    rows = _contacts_with_email(session, "x@y.com")
    assert len(rows) == 1
    assert rows[0].id == contact.id
    assert rows[0].company_id == company_b.id
    assert rows[0].is_primary is True

    audit = session.scalars(
        select(EntityAudit).where(EntityAudit.action == AuditAction.RELOCATED.value)
    ).one()
    assert audit.entity_type == "contact"
    assert audit.entity_id == contact.id
    assert audit.changes == {"company_id": [company_a.id, company_b.id], "is_primary": [True, True]}


def test_relocated_contact_is_not_primary_when_target_has_contacts(session, make_company, make_contact):
    company_a = make_company("A Corp", domain="a.com")
    company_b = make_company("B Corp", domain="b.com")
    make_contact("Bea", "bea@b.com", company_b, is_primary=True)
    moved = make_contact("Xavier", "x@y.com", company_a, is_primary=True)

    ContactResolver(session).resolve("x@y.com", None, company_b, owner_id=1)
    session.commit()

    session.refresh(moved)
    assert moved.company_id == company_b.id
    assert moved.is_primary is False


def test_fuzzy_name_match_reuses_contact_and_records_email(session, make_company, make_contact):
    company_x = make_company("X Inc", domain="x.com")
    jon = make_contact("Jon", "jon@x.com", company_x, last_name="Smith")

    match = ContactResolver(session).resolve("john.smith@x.com", "John Smith", company_x, owner_id=1)
    session.commit()

    assert match.outcome is ContactOutcome.FUZZY_MATCH
    assert match.contact.id == jon.id
    assert match.score >= 0.8
    assert session.scalar(select(func.count(Contact.id))) == 1
    session.refresh(jon)
    assert jon.email == "john.smith@x.com"


def test_name_below_threshold_creates_new_contact(session, make_company, make_contact):
    company_x = make_company("X Inc", domain="x.com")
    jon = make_contact("Jon", "jon@x.com", company_x, last_name="Smith", is_primary=True)

    match = ContactResolver(session).resolve("jsmyth@x.com", "J. Smyth", company_x, owner_id=1)
    session.commit()

    assert match.outcome is ContactOutcome.CREATED
    assert match.contact.id != jon.id
    assert match.contact.first_name == "J."
    assert match.contact.last_name == "Smyth"
    assert match.contact.is_primary is False


def test_equal_scores_go_to_earliest_created_contact(session, make_company, make_contact):
    company_x = make_company("X Inc", domain="x.com")
    make_contact(
        "Smith", "smith.jon@x.com", company_x, last_name="Jon", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
    )
    earliest = make_contact(
        "Jon", "jon@x.com", company_x, last_name="Smith", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc)
    )

    match = ContactResolver(session).resolve("j.smith@x.com", "Jon Smith", company_x, owner_id=1)

    assert match.outcome is ContactOutcome.FUZZY_MATCH
    assert match.score == 1.0
    assert match.contact.id == earliest.id


def test_relocating_primary_hands_flag_to_earliest_remaining_contact(session, make_company, make_contact):
    company_a = make_company("A Corp", domain="a.com")
    company_b = make_company("B Corp", domain="b.com")
    moved = make_contact("Xavier", "x@a.com", company_a, is_primary=True)
    heir = make_contact("Yara", "yara@a.com", company_a)
    make_contact("Zed", "zed@a.com", company_a)

    ContactResolver(session).resolve("x@a.com", "Xavier", company_b, owner_id=1)
    session.commit()

    primaries = session.scalars(
        select(Contact.id).where(Contact.company_id == company_a.id, Contact.is_primary.is_(True))
    ).all()
    assert primaries == [heir.id]
    audit = session.scalars(
        select(EntityAudit).where(EntityAudit.action == AuditAction.RELOCATED.value, EntityAudit.entity_id == moved.id)
    ).one()
    assert audit.changes["is_primary"] == [True, True]
    assert audit.changes["primary_handed_to"] == heir.id


def test_fuzzy_match_never_crosses_companies(session, make_company, make_contact):
    company_x = make_company("X Inc", domain="x.com")
    company_y = make_company("Y Inc", domain="y.com")
    make_contact("Jon", "jon@x.com", company_x, last_name="Smith")

    match = ContactResolver(session).resolve("jon.smith@y.com", "Jon Smith", company_y, owner_id=1)

    assert match.outcome is ContactOutcome.CREATED
    assert match.contact.company_id == company_y.id


def test_first_contact_is_primary_and_second_is_not(session, make_company):
    company = make_company("Fresh", domain="fresh.io")
    resolver = ContactResolver(session)

    first = resolver.resolve("ann@fresh.io", "Ann Lee", company, owner_id=1)
    second = resolver.resolve("bob@fresh.io", "Bob Stone", company, owner_id=1)

    assert first.contact.is_primary is True
    assert second.contact.is_primary is False


def test_missing_name_is_derived_from_email_local_part(session, make_company):
    company = make_company("Fresh", domain="fresh.io")

    match = ContactResolver(session).resolve("ops.team@fresh.io", "  ", company, owner_id=1)

    assert match.contact.first_name == "ops.team"
    assert match.contact.last_name is None


def test_candidate_inside_uncertainty_band_is_reported(session, make_company, make_contact):
    company_x = make_company("X Inc", domain="x.com")
    jon = make_contact("Jon", "jon@x.com", company_x, last_name="Smith")
    resolver = ContactResolver(session, uncertainty_floor=0.6)

    match = resolver.resolve("jsmyth@x.com", "J. Smyth", company_x, owner_id=1)

    assert match.outcome is ContactOutcome.UNCERTAIN
    assert match.contact is None
    assert match.candidate.id == jon.id
    assert session.scalar(select(func.count(Contact.id))) == 1


def test_split_name():
    assert split_name("Mary Ann  van Dyke", "m@x.com") == ("Mary", "Ann van Dyke")
    assert split_name("Cher", "c@x.com") == ("Cher", None)
    assert split_name(None, "c.h@x.com") == ("c.h", None)
