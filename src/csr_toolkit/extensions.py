"""
Extension composer — descriptor extensions → X.509v3 extension objects.

Four kinds, each independently optional:

  KeyUsageExt          → keyUsage (2.5.29.15), critical, flags folded into one bitmask
  ExtendedKeyUsageExt  → extKeyUsage (2.5.29.37), non-critical, names resolved to OIDs
  SubjectAltNameExt    → subjectAltName (2.5.29.17), non-critical, one GeneralName per entry
  CustomExt            → its own OID, caller's critical flag, value as DER UTF8String

The composed list is handed to the signer, which packages all of it into a
single PKCS#9 extensionRequest attribute. Input must already be validated;
anything the encoder still rejects surfaces as GENERATION_FAILED.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from asn1crypto import core
from cryptography import x509

from csr_toolkit.domain.models import (
    CustomExt,
    Extension,
    ExtendedKeyUsageExt,
    KeyUsageExt,
    SanEntry,
    SubjectAltNameExt,
)
from csr_toolkit.domain.tables import EKU_PURPOSE_OIDS, KEY_USAGE_BITS
from csr_toolkit.failure import ErrorCode
from csr_toolkit.result import Result


@dataclass(frozen=True, slots=True)
class ComposedExtension:
    """An encoder-ready extension value plus its criticality."""

    value: x509.ExtensionType
    critical: bool


# ─────────────────────── Key Usage ───────────────────────


def key_usage_mask(flags: Iterable[str]) -> int:
    """Fold flag names into a KeyUsage bitmask (bit n = 1 << n)."""
    mask = 0
    for flag in flags:
        mask |= 1 << KEY_USAGE_BITS[flag]
    return mask


def key_usage_flags(mask: int) -> list[str]:
    """Inverse of key_usage_mask, in table order."""
    return [name for name, bit in KEY_USAGE_BITS.items() if mask & (1 << bit)]


def _is_set(mask: int, name: str) -> bool:
    return bool(mask & (1 << KEY_USAGE_BITS[name]))


def compose_key_usage(ext: KeyUsageExt) -> ComposedExtension:
    mask = key_usage_mask(ext.flags)
    value = x509.KeyUsage(
        digital_signature=_is_set(mask, "digitalSignature"),
        content_commitment=_is_set(mask, "nonRepudiation"),
        key_encipherment=_is_set(mask, "keyEncipherment"),
        data_encipherment=_is_set(mask, "dataEncipherment"),
        key_agreement=_is_set(mask, "keyAgreement"),
        key_cert_sign=_is_set(mask, "keyCertSign"),
        crl_sign=_is_set(mask, "cRLSign"),
        encipher_only=_is_set(mask, "encipherOnly"),
        decipher_only=_is_set(mask, "decipherOnly"),
    )
    return ComposedExtension(value, critical=True)


# ─────────────────────── Extended Key Usage ───────────────────────


def resolve_eku(usage: str) -> str:
    """Map a purpose name to its OID; dotted OIDs pass through unchanged."""
    return EKU_PURPOSE_OIDS.get(usage, usage)


def compose_extended_key_usage(ext: ExtendedKeyUsageExt) -> ComposedExtension:
    # No de-duplication: the caller's order and repeats are preserved.
    oids = [x509.ObjectIdentifier(resolve_eku(usage)) for usage in ext.usages]
    return ComposedExtension(x509.ExtendedKeyUsage(oids), critical=False)


# ─────────────────────── Subject Alternative Name ───────────────────────


def general_name(entry: SanEntry) -> x509.GeneralName:
    """
    Map a SAN entry to its GeneralName CHOICE.

    DNS → dNSName [2], IP → iPAddress [7], email → rfc822Name [1],
    URI → uniformResourceIdentifier [6].
    """
    match entry.type:
        case "DNS":
            return x509.DNSName(entry.value)
        case "IP":
            return x509.IPAddress(ipaddress.ip_address(entry.value))
        case "email":
            return x509.RFC822Name(entry.value)
        case "URI":
            return x509.UniformResourceIdentifier(entry.value)
    raise ValueError(f"Unsupported SAN type: {entry.type}")


def compose_subject_alt_name(ext: SubjectAltNameExt) -> ComposedExtension:
    names = [general_name(entry) for entry in ext.entries]
    return ComposedExtension(x509.SubjectAlternativeName(names), critical=False)


# ─────────────────────── Custom ───────────────────────


def compose_custom(ext: CustomExt) -> ComposedExtension:
    der_value = core.UTF8String(ext.value).dump()
    value = x509.UnrecognizedExtension(x509.ObjectIdentifier(ext.oid), der_value)
    return ComposedExtension(value, critical=ext.critical)


# ─────────────────────── Dispatch ───────────────────────


def compose_extension(ext: Extension) -> ComposedExtension:
    match ext:
        case KeyUsageExt():
            return compose_key_usage(ext)
        case ExtendedKeyUsageExt():
            return compose_extended_key_usage(ext)
        case SubjectAltNameExt():
            return compose_subject_alt_name(ext)
        case CustomExt():
            return compose_custom(ext)
        case _:
            assert_never(ext)


def compose_extensions(extensions: Iterable[Extension]) -> Result[list[ComposedExtension]]:
    """
    Build every requested extension, or fail as a whole.

    Empty KU / EKU / SAN lists are dropped rather than emitted as empty
    extensions, which CAs reject.
    """
    present = [ext for ext in extensions if not _is_empty(ext)]
    return Result.from_computation(
        lambda: [compose_extension(ext) for ext in present],
        ErrorCode.GENERATION_FAILED,
        "Failed to encode requested extensions",
    )


def _is_empty(ext: Extension) -> bool:
    match ext:
        case KeyUsageExt(flags=flags):
            return not flags
        case ExtendedKeyUsageExt(usages=usages):
            return not usages
        case SubjectAltNameExt(entries=entries):
            return not entries
    return False
