"""
Subject composer — validated Subject → X.509 Distinguished Name.

Attributes are emitted in a fixed order (C, ST, L, O, OU, CN, E) and absent
ones are skipped, so the same descriptor always yields byte-identical names.
"""

from __future__ import annotations

from cryptography import x509
from cryptography.x509.oid import NameOID

from csr_toolkit.domain.models import Subject
from csr_toolkit.domain.tables import SUBJECT_ORDER

_ATTRIBUTE_OIDS: dict[str, x509.ObjectIdentifier] = {
    "country": NameOID.COUNTRY_NAME,
    "state": NameOID.STATE_OR_PROVINCE_NAME,
    "locality": NameOID.LOCALITY_NAME,
    "organization": NameOID.ORGANIZATION_NAME,
    "organizationalUnit": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "commonName": NameOID.COMMON_NAME,
    "email": NameOID.EMAIL_ADDRESS,
}


def subject_fields(subject: Subject) -> list[tuple[str, str]]:
    """Present (descriptor key, value) pairs in composition order."""
    values = {
        "country": subject.country,
        "state": subject.state,
        "locality": subject.locality,
        "organization": subject.organization,
        "organizationalUnit": subject.organizational_unit,
        "commonName": subject.common_name,
        "email": subject.email,
    }
    return [(key, values[key]) for key, _ in SUBJECT_ORDER if values[key]]  # type: ignore[misc]


def subject_dn_string(subject: Subject) -> str:
    """Human-readable 'C=US, ..., CN=host' form for log events."""
    shorts = dict(SUBJECT_ORDER)
    return ", ".join(f"{shorts[key]}={value}" for key, value in subject_fields(subject))


def compose_subject(subject: Subject) -> x509.Name:
    """Build the ordered RDN sequence consumed by the signer."""
    return x509.Name([
        x509.NameAttribute(_ATTRIBUTE_OIDS[key], value)
        for key, value in subject_fields(subject)
    ])
