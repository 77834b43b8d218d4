"""
Lookup tables shared by the composers and the analyzer.

Read-only after import: every table is a MappingProxyType or a tuple, so
neither direction can mutate what the other relies on.
"""

from __future__ import annotations

from types import MappingProxyType

# ─────────────────────── Key Usage ───────────────────────
# Bit positions of the KeyUsage BIT STRING (RFC 5280 §4.2.1.3).
# A flag's mask value is 1 << position.

KEY_USAGE_BITS: MappingProxyType[str, int] = MappingProxyType({
    "digitalSignature": 0,
    "nonRepudiation": 1,
    "keyEncipherment": 2,
    "dataEncipherment": 3,
    "keyAgreement": 4,
    "keyCertSign": 5,
    "cRLSign": 6,
    "encipherOnly": 7,
    "decipherOnly": 8,
})

# ─────────────────────── Extended Key Usage ───────────────────────

EKU_PURPOSE_OIDS: MappingProxyType[str, str] = MappingProxyType({
    "serverAuth": "1.3.6.1.5.5.7.3.1",
    "clientAuth": "1.3.6.1.5.5.7.3.2",
    "codeSigning": "1.3.6.1.5.5.7.3.3",
    "emailProtection": "1.3.6.1.5.5.7.3.4",
    "timeStamping": "1.3.6.1.5.5.7.3.8",
    "OCSPSigning": "1.3.6.1.5.5.7.3.9",
})

# ─────────────────────── Distinguished Name ───────────────────────
# Composition order of the subject DN, as (descriptor key, short form).

SUBJECT_ORDER: tuple[tuple[str, str], ...] = (
    ("country", "C"),
    ("state", "ST"),
    ("locality", "L"),
    ("organization", "O"),
    ("organizationalUnit", "OU"),
    ("commonName", "CN"),
    ("email", "E"),
)

DN_SHORT_TO_LONG: MappingProxyType[str, str] = MappingProxyType(
    {short: long for long, short in SUBJECT_ORDER}
)

# ─────────────────────── Keys ───────────────────────

RSA_KEY_SIZES: tuple[int, ...] = (2048, 3072, 4096)
DEFAULT_RSA_BITS = 2048

CURVE_ALIASES: MappingProxyType[str, str] = MappingProxyType({
    "P-256": "P-256",
    "P-384": "P-384",
    "P-521": "P-521",
    "prime256v1": "P-256",
    "secp384r1": "P-384",
    "secp521r1": "P-521",
})
DEFAULT_CURVE = "P-256"

CURVE_BITS: MappingProxyType[str, int] = MappingProxyType({
    "P-256": 256,
    "P-384": 384,
    "P-521": 521,
})

# ─────────────────────── Subject Alternative Name ───────────────────────
# Descriptor SAN type → GeneralName CHOICE tag (RFC 5280 §4.2.1.6).

SAN_GENERAL_NAME_TAGS: MappingProxyType[str, int] = MappingProxyType({
    "email": 1,
    "DNS": 2,
    "URI": 6,
    "IP": 7,
})
