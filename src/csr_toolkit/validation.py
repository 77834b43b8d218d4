"""
Field validators — stateless predicates over individual descriptor fields.

Each validator returns Result: Success(value) when the field is acceptable,
Failure(<validation ErrorCode>, <human-readable reason>) otherwise. None of
them has side effects, so they can be chained in any order; the fixed order
used for a whole descriptor lives in `validate_descriptor`.

Patterns are anchored and free of nested quantifiers, and every
variable-length input is length-bounded before any pattern runs.
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Collection, Iterator
from urllib.parse import urlsplit

from cryptography.x509 import ObjectIdentifier
from cryptography.x509.oid import ExtensionOID

from csr_toolkit.domain.models import (
    CertificateRequestDescriptor,
    CustomExt,
    EcdsaKeySpec,
    KeySpec,
    RsaKeySpec,
    SanEntry,
    UnsupportedKeySpec,
)
from csr_toolkit.domain.tables import (
    CURVE_BITS,
    EKU_PURPOSE_OIDS,
    KEY_USAGE_BITS,
    RSA_KEY_SIZES,
)
from csr_toolkit.failure import ErrorCode
from csr_toolkit.result import Result
from csr_toolkit.templates import TEMPLATES

MAX_COMMON_NAME = 64
MAX_EMAIL = 254
MAX_EMAIL_LOCAL = 64
MIN_PASSWORD = 8
MAX_DNS_NAME = 253
MAX_DNS_LABEL = 63

PASSWORD_SPECIALS = frozenset('!@#$%^&*(),.?":{}|<>')

_COUNTRY = re.compile(r"[A-Z]{2}")
_OID = re.compile(r"\d+(?:\.\d+)+")
_DNS_LABEL = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
_IPV4 = re.compile(r"(?:\d{1,3}\.){3}\d{1,3}")
_IPV6 = re.compile(r"(?:[0-9A-Fa-f]{0,4}:){2,7}[0-9A-Fa-f]{0,4}")
_URI_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*")

# Extensions the X.509 library decodes into typed values (KU, EKU, SAN,
# BasicConstraints, ...). A custom extension under one of these OIDs would
# carry a UTF8String where that type is expected.
STANDARD_EXTENSION_OIDS: frozenset[str] = frozenset(
    value.dotted_string
    for value in vars(ExtensionOID).values()
    if isinstance(value, ObjectIdentifier)
)


# ─────────────────────── Subject Fields ───────────────────────


def validate_common_name(common_name: str | None) -> Result[str]:
    """CN is mandatory, non-blank and at most 64 characters."""
    if common_name is None or not common_name.strip():
        return Result.failure(ErrorCode.REQUIRED, "Common Name (CN) is required")
    if len(common_name) > MAX_COMMON_NAME:
        return Result.failure(
            ErrorCode.TOO_LONG,
            f"Common Name must be {MAX_COMMON_NAME} characters or less",
        )
    return Result.success(common_name)


def validate_country(country: str | None) -> Result[str]:
    """Optional; when present, exactly two uppercase ASCII letters."""
    if country and not _COUNTRY.fullmatch(country):
        return Result.failure(
            ErrorCode.INVALID_FORMAT,
            "Country must be a 2-letter uppercase ISO code (e.g., US, GB)",
        )
    return Result.success(country or "")


def _password_classes(password: str) -> int:
    checks = (
        any("A" <= c <= "Z" for c in password),
        any("a" <= c <= "z" for c in password),
        any("0" <= c <= "9" for c in password),
        any(c in PASSWORD_SPECIALS for c in password),
    )
    return sum(checks)


def validate_password(password: str | None) -> Result[str]:
    """Optional; when present, ≥ 8 characters and ≥ 3 of 4 character classes."""
    if not password:
        return Result.success("")
    if len(password) < MIN_PASSWORD:
        return Result.failure(
            ErrorCode.TOO_WEAK,
            f"Password must be at least {MIN_PASSWORD} characters long",
        )
    if _password_classes(password) < 3:
        return Result.failure(
            ErrorCode.INSUFFICIENT_COMPLEXITY,
            "Password must contain at least 3 of: uppercase letters, "
            "lowercase letters, numbers, special characters",
        )
    return Result.success(password)


def _email_structure_ok(value: str, max_local: int | None) -> bool:
    """
    local@domain.tld check by linear scanning: one '@', non-empty parts,
    a dot inside the domain (not leading), no whitespace anywhere.
    """
    if len(value) > MAX_EMAIL or value.count("@") != 1:
        return False
    if any(c.isspace() for c in value):
        return False
    local, domain = value.split("@")
    if not local or not domain:
        return False
    if max_local is not None and len(local) > max_local:
        return False
    return domain.find(".") >= 1


def validate_email(email: str | None) -> Result[str]:
    """Optional subject emailAddress attribute."""
    if not email:
        return Result.success("")
    if len(email) > MAX_EMAIL:
        return Result.failure(ErrorCode.INVALID_FORMAT, "Email address too long")
    if not _email_structure_ok(email, MAX_EMAIL_LOCAL):
        return Result.failure(ErrorCode.INVALID_FORMAT, "Invalid email address format")
    return Result.success(email)


# ─────────────────────── Subject Alternative Names ───────────────────────


def is_valid_dns_name(value: str) -> bool:
    """
    RFC 1123 host name, optionally with a wildcard.

    A single literal '*' is allowed only as the entire first label, so
    '*.example.com' passes while 'sub.*.example.com' and 'f*o.example.com'
    do not.
    """
    if not 1 <= len(value) <= MAX_DNS_NAME:
        return False
    labels = value.split(".")
    for index, label in enumerate(labels):
        if not 1 <= len(label) <= MAX_DNS_LABEL:
            return False
        if index == 0 and label == "*":
            continue
        if not _DNS_LABEL.fullmatch(label):
            return False
    return True


def is_valid_ip_address(value: str) -> bool:
    """
    Dotted-quad IPv4 or colon-grouped IPv6, and decodable to address octets.

    The structural pattern runs first; the address must then also be a real
    one (no octet above 255), because the iPAddress GeneralName carries the
    binary form.
    """
    if len(value) > 45:
        return False
    if not (_IPV4.fullmatch(value) or _IPV6.fullmatch(value)):
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def is_valid_san_email(value: str) -> bool:
    """rfc822Name is an IA5String, so only ASCII addresses can be encoded."""
    return value.isascii() and _email_structure_ok(value, None)


def is_valid_uri(value: str) -> bool:
    """Absolute URI: scheme plus a non-empty authority or path, ASCII, no spaces."""
    if not value.isascii() or any(c.isspace() for c in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _URI_SCHEME.fullmatch(parts.scheme):
        return False
    # urlsplit lowercases the scheme; it must still be the literal prefix.
    if not value.lower().startswith(parts.scheme + ":"):
        return False
    return bool(parts.netloc or parts.path)


_SAN_CHECKS = {
    "DNS": (is_valid_dns_name, "Invalid DNS name in SAN"),
    "IP": (is_valid_ip_address, "Invalid IP address in SAN"),
    "email": (is_valid_san_email, "Invalid email in SAN"),
    "URI": (is_valid_uri, "Invalid URI in SAN"),
}


def validate_san_entry(entry: SanEntry) -> Result[SanEntry]:
    check = _SAN_CHECKS.get(entry.type)
    if check is None:
        return Result.failure(
            ErrorCode.INVALID_SAN,
            f"Unsupported SAN type: {entry.type} (expected DNS, IP, email or URI)",
        )
    predicate, message = check
    if not predicate(entry.value):
        return Result.failure(ErrorCode.INVALID_SAN, f"{message}: {entry.value}")
    return Result.success(entry)


# ─────────────────────── Object Identifiers ───────────────────────


def is_valid_oid(oid: str) -> bool:
    """
    Dotted decimal with at least two arcs, within X.660 arc limits.

    The first arc is 0, 1 or 2; under 0 and 1 the second arc is below 40.
    """
    if len(oid) > 512 or not _OID.fullmatch(oid):
        return False
    first, second = (int(arc) for arc in oid.split(".")[:2])
    if first > 2:
        return False
    return first == 2 or second < 40


def validate_oid(oid: str) -> Result[str]:
    if not is_valid_oid(oid):
        return Result.failure(
            ErrorCode.INVALID_OID,
            f"Invalid OID format: {oid} (expected dotted decimal such as 1.2.840.113549)",
        )
    return Result.success(oid)


def validate_custom_extension(ext: CustomExt, taken: Collection[str] = ()) -> Result[CustomExt]:
    """
    A custom extension needs a well-formed OID that no standard extension
    uses and that no earlier extension in the same request already carries.
    """
    if not is_valid_oid(ext.oid):
        return validate_oid(ext.oid).map(lambda _: ext)
    if ext.oid in STANDARD_EXTENSION_OIDS:
        return Result.failure(
            ErrorCode.INVALID_OID,
            f"OID {ext.oid} is a standard X.509 extension and cannot be used "
            "for a custom extension",
        )
    if ext.oid in taken:
        return Result.failure(ErrorCode.INVALID_OID, f"Duplicate extension OID: {ext.oid}")
    return Result.success(ext)


def validate_eku_entry(usage: str) -> Result[str]:
    """An EKU entry is a known purpose name or a literal OID."""
    if usage in EKU_PURPOSE_OIDS:
        return Result.success(usage)
    if not is_valid_oid(usage):
        return Result.failure(
            ErrorCode.INVALID_OID,
            f"Unknown extended key usage: {usage} "
            f"(expected one of {', '.join(EKU_PURPOSE_OIDS)} or a dotted OID)",
        )
    return Result.success(usage)


# ─────────────────────── Key Spec & Key Usage ───────────────────────


def validate_key_spec(key_spec: KeySpec) -> Result[KeySpec]:
    match key_spec:
        case RsaKeySpec(bits=bits) if bits in RSA_KEY_SIZES:
            return Result.success(key_spec)
        case RsaKeySpec(bits=bits):
            sizes = ", ".join(str(size) for size in RSA_KEY_SIZES)
            return Result.failure(
                ErrorCode.INVALID_KEY_SPEC,
                f"Unsupported RSA key size: {bits} (expected one of {sizes})",
            )
        case EcdsaKeySpec(curve=curve) if curve in CURVE_BITS:
            return Result.success(key_spec)
        case EcdsaKeySpec(curve=curve):
            return Result.failure(
                ErrorCode.INVALID_KEY_SPEC,
                f"Unsupported elliptic curve: {curve} (expected one of {', '.join(CURVE_BITS)})",
            )
        case UnsupportedKeySpec(key_type=key_type):
            return Result.failure(
                ErrorCode.INVALID_KEY_SPEC,
                f"Unsupported key type: {key_type} (expected RSA or ECDSA)",
            )
    return Result.failure(ErrorCode.INVALID_KEY_SPEC, "Unsupported key type")


def validate_key_usage(flags: tuple[str, ...]) -> Result[tuple[str, ...]]:
    unknown = [flag for flag in flags if flag not in KEY_USAGE_BITS]
    if unknown:
        return Result.failure(
            ErrorCode.INVALID_KEY_USAGE,
            f"Unknown key usage: {', '.join(unknown)}",
        )
    if ("encipherOnly" in flags or "decipherOnly" in flags) and "keyAgreement" not in flags:
        return Result.failure(
            ErrorCode.INVALID_KEY_USAGE,
            "encipherOnly and decipherOnly require keyAgreement",
        )
    return Result.success(flags)


def validate_template(template: str | None) -> Result[str]:
    if template is not None and template not in TEMPLATES:
        return Result.failure(
            ErrorCode.UNKNOWN_TEMPLATE,
            f"Unknown template: {template} (expected one of {', '.join(TEMPLATES)})",
        )
    return Result.success(template or "")


# ─────────────────────── Whole Descriptor ───────────────────────


def _checks(descriptor: CertificateRequestDescriptor) -> Iterator[Result[object]]:
    """Yield each field check lazily, in reporting order."""
    subject = descriptor.subject
    yield validate_common_name(subject.common_name)
    yield validate_country(subject.country)
    yield validate_password(descriptor.key_password)
    yield validate_email(subject.email)
    if descriptor.subject_alt_name is not None:
        for entry in descriptor.subject_alt_name.entries:
            yield validate_san_entry(entry)
    custom_oids = [custom.oid for custom in descriptor.custom_extensions]
    for index, custom in enumerate(descriptor.custom_extensions):
        yield validate_custom_extension(custom, custom_oids[:index])
    yield validate_key_spec(descriptor.key_spec)
    if descriptor.key_usage is not None:
        yield validate_key_usage(descriptor.key_usage.flags)
    if descriptor.extended_key_usage is not None:
        for usage in descriptor.extended_key_usage.usages:
            yield validate_eku_entry(usage)
    yield validate_template(descriptor.template)


def validate_descriptor(
    descriptor: CertificateRequestDescriptor,
) -> Result[CertificateRequestDescriptor]:
    """
    Validate every field of a descriptor, failing fast.

    Order: CN → country → password → email → each SAN entry → each custom
    OID → key spec → key usage → each EKU entry → template. The first
    failure is returned; nothing after it is evaluated.
    """
    return Result.all_of(_checks(descriptor)).map(lambda _: descriptor)
