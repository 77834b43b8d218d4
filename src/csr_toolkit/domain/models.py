"""
Domain models — immutable value objects for certificate request descriptors.

A CertificateRequestDescriptor is the declarative, wire-format-independent
description of a CSR: subject attributes, key specification and requested
extensions. The same extension shapes are reconstructed by the analyzer,
so generation and analysis speak one vocabulary.

Extensions form a closed union (Extension) matched exhaustively by both the
composer and the analyzer.

All models are frozen dataclasses. Nothing here is persisted: a descriptor
lives for exactly one generate/analyze call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Subject:
    """
    Subject Distinguished Name attributes.

    Only `common_name` is mandatory. Empty strings are normalised to None
    by the descriptor reader, so "absent" always means None.
    """

    common_name: str
    country: str | None = None
    state: str | None = None
    locality: str | None = None
    organization: str | None = None
    organizational_unit: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class RsaKeySpec:
    bits: int = 2048


@dataclass(frozen=True, slots=True)
class EcdsaKeySpec:
    curve: str = "P-256"


@dataclass(frozen=True, slots=True)
class UnsupportedKeySpec:
    """A keyType the toolkit cannot generate; rejected in validation order."""

    key_type: str


type KeySpec = RsaKeySpec | EcdsaKeySpec | UnsupportedKeySpec


@dataclass(frozen=True, slots=True)
class KeyUsageExt:
    """Requested Key Usage flag names. Always emitted as critical."""

    flags: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ExtendedKeyUsageExt:
    """
    Requested EKU purposes, caller order preserved, duplicates kept.

    Each entry is either a well-known purpose name (serverAuth, ...) or a
    dotted-decimal OID.
    """

    usages: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SanEntry:
    """
    One GeneralName. Descriptors use DNS, IP, email or URI; the analyzer may
    also report dirName, registeredID or otherName from foreign requests.
    """

    type: str
    value: str


@dataclass(frozen=True, slots=True)
class SubjectAltNameExt:
    entries: tuple[SanEntry, ...]


@dataclass(frozen=True, slots=True)
class CustomExt:
    """An arbitrary OID-keyed extension carrying an opaque string value."""

    oid: str
    critical: bool
    value: str


type Extension = KeyUsageExt | ExtendedKeyUsageExt | SubjectAltNameExt | CustomExt


@dataclass(frozen=True, slots=True)
class CertificateRequestDescriptor:
    """
    Everything needed to produce one signed PKCS#10 request.

    `extensions` holds at most one each of KeyUsageExt, ExtendedKeyUsageExt
    and SubjectAltNameExt, plus any number of CustomExt.
    """

    subject: Subject
    key_spec: KeySpec = field(default_factory=RsaKeySpec)
    key_usage: KeyUsageExt | None = None
    extended_key_usage: ExtendedKeyUsageExt | None = None
    subject_alt_name: SubjectAltNameExt | None = None
    custom_extensions: tuple[CustomExt, ...] = ()
    key_password: str | None = field(default=None, repr=False)
    template: str | None = None

    @property
    def extensions(self) -> tuple[Extension, ...]:
        """All requested extensions in emission order (KU, EKU, SAN, custom...)."""
        present: list[Extension] = [
            ext
            for ext in (self.key_usage, self.extended_key_usage, self.subject_alt_name)
            if ext is not None
        ]
        present.extend(self.custom_extensions)
        return tuple(present)


@dataclass(frozen=True, slots=True)
class GeneratedRequest:
    """The PEM triple returned by a successful generation."""

    csr_pem: str
    private_key_pem: str = field(repr=False)
    public_key_pem: str


@dataclass(frozen=True, slots=True)
class PublicKeyInfo:
    """Key metadata recovered from a request. `curve` is set for ECDSA only."""

    type: str
    bits: int
    curve: str | None = None

    def to_dict(self) -> dict[str, Any]:
        info: dict[str, Any] = {"type": self.type, "bits": self.bits}
        if self.curve is not None:
            info["curve"] = self.curve
        return info


@dataclass(frozen=True, slots=True)
class PassthroughExt:
    """An extension the analyzer has no dedicated shape for, keyed by OID."""

    oid: str
    critical: bool
    value: str


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """
    Descriptor-shaped view of a parsed request.

    `subject` uses the same keys as the generation body (commonName,
    organization, ...), so a freshly generated request analyses back to
    the subject it was built from.
    """

    subject: dict[str, str]
    public_key: PublicKeyInfo
    key_usage: tuple[str, ...] | None
    extended_key_usage: tuple[str, ...] | None
    subject_alt_name: tuple[SanEntry, ...] | None
    other_extensions: tuple[PassthroughExt, ...]
    signature_algorithm: str
    verified: bool
    pem: str = field(repr=False)

    def extensions_dict(self) -> dict[str, Any]:
        """Extensions rendered in the JSON shape returned by /api/analyze."""
        extensions: dict[str, Any] = {}
        if self.key_usage is not None:
            extensions["keyUsage"] = list(self.key_usage)
        if self.extended_key_usage is not None:
            extensions["extendedKeyUsage"] = list(self.extended_key_usage)
        if self.subject_alt_name is not None:
            extensions["subjectAltName"] = [
                {"type": entry.type, "value": entry.value}
                for entry in self.subject_alt_name
            ]
        for ext in self.other_extensions:
            extensions[ext.oid] = {"critical": ext.critical, "value": ext.value}
        return extensions
