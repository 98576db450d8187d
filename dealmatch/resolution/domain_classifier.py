"""Email domain extraction and personal-provider detection."""

from __future__ import annotations

import re
from dataclasses import dataclass

# Every domain label is non-empty and cannot start or end with a hyphen.
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9._%+-]+@(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)+[A-Za-z]{2,}$"
)

# Shared providers: a domain in this set never identifies a company.
PERSONAL_DOMAINS: frozenset[str] = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "icloud.com",
        "me.com",
        "aol.com",
        "live.com",
    }
)

_SECOND_LEVEL_SUFFIXES = frozenset({"co", "com", "org", "net", "ac", "gov", "edu"})


@dataclass(frozen=True)
class EmailClassification:
    email: str | None
    domain: str | None
    is_personal: bool

    @property
    def is_valid(self) -> bool:
        return self.domain is not None

    @property
    def blocking_domain(self) -> str | None:
        """Domain usable as a company blocking key, if any."""
        if self.domain is None or self.is_personal:
            return None
        return self.domain


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    cleaned = email.strip().lower()
    return cleaned or None


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return EMAIL_PATTERN.match(email.strip()) is not None


def is_personal_domain(domain: str | None) -> bool:
    return bool(domain) and domain.lower() in PERSONAL_DOMAINS


def classify_email(email: str | None) -> EmailClassification:
    """Extract the lower-cased domain of ``email`` and flag personal providers.

    Malformed addresses yield ``domain=None``.
    """
    normalized = normalize_email(email)
    if normalized is None or not is_valid_email(normalized):
        return EmailClassification(email=normalized, domain=None, is_personal=False)

    domain = normalized.rsplit("@", 1)[1]
    return EmailClassification(email=normalized, domain=domain, is_personal=is_personal_domain(domain))


def domain_label(domain: str) -> str:
    """Registrable label of a domain: ``mail.acme.co.uk`` -> ``acme``."""
    labels = [label for label in domain.lower().split(".") if label]
    if len(labels) < 2:
        return labels[0] if labels else domain
    if len(labels) >= 3 and labels[-2] in _SECOND_LEVEL_SUFFIXES and len(labels[-1]) == 2:
        return labels[-3]
    return labels[-2]


def company_name_from_domain(domain: str) -> str:
    return domain_label(domain).title()


def email_local_part(email: str) -> str:
    return email.split("@", 1)[0]
