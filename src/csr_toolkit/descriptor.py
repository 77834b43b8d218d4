"""
Request bodies — flat JSON payloads and their mapping to domain descriptors.

pydantic checks only the *shape* of the body (JSON types, camelCase names).
Field *content* rules (CN length, country format, SAN syntax, ...) belong to
the validators, so that every content problem is reported with its specific
reason in the fixed validation order.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from csr_toolkit.domain.models import (
    CertificateRequestDescriptor,
    CustomExt,
    EcdsaKeySpec,
    ExtendedKeyUsageExt,
    KeySpec,
    KeyUsageExt,
    RsaKeySpec,
    SanEntry,
    Subject,
    SubjectAltNameExt,
    UnsupportedKeySpec,
)
from csr_toolkit.domain.tables import CURVE_ALIASES, DEFAULT_CURVE, DEFAULT_RSA_BITS


class _Body(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class SanEntryBody(_Body):
    type: str = "DNS"
    value: str | None = None


class CustomExtensionBody(_Body):
    oid: str
    critical: bool = False
    value: str = ""


class GenerateRequestBody(_Body):
    """Body of POST /api/generate."""

    key_type: str | None = None
    key_size: int | None = None
    curve_name: str | None = None
    common_name: str | None = None
    organization: str | None = None
    organizational_unit: str | None = None
    locality: str | None = None
    state: str | None = None
    country: str | None = None
    email: str | None = None
    subject_alt_names: list[SanEntryBody] | None = None
    key_usage: list[str] | None = None
    extended_key_usage: list[str] | None = None
    custom_extensions: list[CustomExtensionBody] | None = None
    password: str | None = Field(default=None, repr=False)
    template: str | None = None


class AnalyzeRequestBody(_Body):
    """Body of POST /api/analyze."""

    csr: str | None = None


def _optional(value: str | None) -> str | None:
    """Blank optional attributes are treated as absent."""
    if value is None or not value.strip():
        return None
    return value


def read_key_spec(key_type: str | None, key_size: int | None, curve_name: str | None) -> KeySpec:
    """
    Resolve keyType / keySize / curveName into exactly one key spec.

    Defaults: RSA, 2048 bits, P-256. OpenSSL curve aliases are accepted.
    Unknown key types, sizes and curve names are carried through unchanged
    and rejected by the validator at their place in the reporting order.
    """
    match (key_type or "RSA").upper():
        case "RSA":
            return RsaKeySpec(bits=DEFAULT_RSA_BITS if key_size is None else key_size)
        case "ECDSA" | "EC":
            curve = CURVE_ALIASES.get(curve_name or DEFAULT_CURVE, curve_name or DEFAULT_CURVE)
            return EcdsaKeySpec(curve=curve)
        case _:
            return UnsupportedKeySpec(key_type=key_type or "")


def _read_san(entries: list[SanEntryBody] | None) -> SubjectAltNameExt | None:
    present = tuple(
        SanEntry(type=entry.type, value=entry.value.strip())
        for entry in entries or []
        if entry.value and entry.value.strip()
    )
    return SubjectAltNameExt(present) if present else None


def to_descriptor(body: GenerateRequestBody) -> CertificateRequestDescriptor:
    """Map a generate body onto a CertificateRequestDescriptor (no content checks)."""
    subject = Subject(
        common_name=body.common_name or "",
        country=_optional(body.country),
        state=_optional(body.state),
        locality=_optional(body.locality),
        organization=_optional(body.organization),
        organizational_unit=_optional(body.organizational_unit),
        email=_optional(body.email),
    )
    return CertificateRequestDescriptor(
        subject=subject,
        key_spec=read_key_spec(body.key_type, body.key_size, body.curve_name),
        key_usage=KeyUsageExt(tuple(body.key_usage)) if body.key_usage else None,
        extended_key_usage=(
            ExtendedKeyUsageExt(tuple(usage.strip() for usage in body.extended_key_usage))
            if body.extended_key_usage
            else None
        ),
        subject_alt_name=_read_san(body.subject_alt_names),
        custom_extensions=tuple(
            CustomExt(oid=ext.oid.strip(), critical=ext.critical, value=ext.value)
            for ext in body.custom_extensions or []
        ),
        key_password=body.password or None,
        template=_optional(body.template),
    )
