"""
Request analyzer — PEM request → descriptor-shaped AnalysisResult.

The inverse of the assembler. Decoding and signature verification are
delegated to the RequestParser port; this module only decides how decoded
structures map back onto descriptor vocabulary:

  subject DN        → {commonName, organization, ...} (short forms renamed)
  public key        → {type: RSA, bits} | {type: ECDSA, curve, bits}
  keyUsage          → flag names (bitmask unfolded)
  extKeyUsage       → dotted OID list, order preserved
  subjectAltName    → [{type, value}] in GeneralName order
  anything else     → {critical, value} keyed by dotted OID

An invalid signature is reported as verified=False; only input that cannot
be decoded at all becomes PARSE_FAILED.
"""

from __future__ import annotations

import structlog
from asn1crypto import core
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from csr_toolkit.domain.models import AnalysisResult, PassthroughExt, PublicKeyInfo, SanEntry
from csr_toolkit.domain.ports import RequestParser
from csr_toolkit.domain.tables import CURVE_BITS, DN_SHORT_TO_LONG, KEY_USAGE_BITS
from csr_toolkit.extensions import key_usage_flags
from csr_toolkit.failure import ErrorCode, FailureDescription
from csr_toolkit.result import Result

log = structlog.get_logger()

# ─────────────────────── Lookup Tables ───────────────────────

_NAME_SHORT_FORMS: dict[x509.ObjectIdentifier, str] = {
    NameOID.COMMON_NAME: "CN",
    NameOID.ORGANIZATION_NAME: "O",
    NameOID.ORGANIZATIONAL_UNIT_NAME: "OU",
    NameOID.LOCALITY_NAME: "L",
    NameOID.STATE_OR_PROVINCE_NAME: "ST",
    NameOID.COUNTRY_NAME: "C",
    NameOID.EMAIL_ADDRESS: "E",
}

_CURVE_NAMES: dict[str, str] = {
    "secp256r1": "P-256",
    "secp384r1": "P-384",
    "secp521r1": "P-521",
}

_SIGNATURE_ALGORITHMS: dict[x509.ObjectIdentifier, str] = {
    SignatureAlgorithmOID.RSA_WITH_SHA1: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "RSASSA-PSS",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.ED25519: "Ed25519",
    SignatureAlgorithmOID.ED448: "Ed448",
}

# KeyUsage attribute names on cryptography's x509.KeyUsage, by flag name.
_KEY_USAGE_ATTRIBUTES: dict[str, str] = {
    "digitalSignature": "digital_signature",
    "nonRepudiation": "content_commitment",
    "keyEncipherment": "key_encipherment",
    "dataEncipherment": "data_encipherment",
    "keyAgreement": "key_agreement",
    "keyCertSign": "key_cert_sign",
    "cRLSign": "crl_sign",
    "encipherOnly": "encipher_only",
    "decipherOnly": "decipher_only",
}

_STRING_TYPES = (
    core.UTF8String,
    core.PrintableString,
    core.IA5String,
    core.VisibleString,
    core.BMPString,
    core.UniversalString,
    core.TeletexString,
)


# ─────────────────────── Subject ───────────────────────


def _attribute_value(value: str | bytes) -> str:
    return value if isinstance(value, str) else value.hex()


def extract_subject(name: x509.Name) -> dict[str, str]:
    """
    Subject attributes keyed like a generation body.

    Known short forms (CN, O, OU, L, ST, C, E) are renamed to descriptor
    keys; any other attribute keeps its RFC 4514 name or dotted OID. A
    repeated attribute keeps its last value.
    """
    subject: dict[str, str] = {}
    for attribute in name:
        short = _NAME_SHORT_FORMS.get(attribute.oid)
        key = DN_SHORT_TO_LONG[short] if short else attribute.rfc4514_attribute_name
        value = _attribute_value(attribute.value)
        if value:
            subject[key] = value
    return subject


# ─────────────────────── Public Key ───────────────────────


def extract_public_key_info(csr: x509.CertificateSigningRequest) -> PublicKeyInfo:
    try:
        public_key = csr.public_key()
    except (UnsupportedAlgorithm, ValueError):
        return PublicKeyInfo(type="Unknown", bits=0)
    match public_key:
        case rsa.RSAPublicKey():
            return PublicKeyInfo(type="RSA", bits=public_key.key_size)
        case ec.EllipticCurvePublicKey():
            curve = _CURVE_NAMES.get(public_key.curve.name, public_key.curve.name)
            return PublicKeyInfo(
                type="ECDSA",
                bits=CURVE_BITS.get(curve, public_key.curve.key_size),
                curve=curve,
            )
    return PublicKeyInfo(type="Unknown", bits=0)


def signature_algorithm_name(csr: x509.CertificateSigningRequest) -> str:
    oid = csr.signature_algorithm_oid
    return _SIGNATURE_ALGORITHMS.get(oid, oid.dotted_string)


# ─────────────────────── Extensions ───────────────────────


def key_usage_mask_of(usage: x509.KeyUsage) -> int:
    """Fold a decoded KeyUsage back into its bitmask."""
    mask = 0
    for flag, attribute in _KEY_USAGE_ATTRIBUTES.items():
        if flag in ("encipherOnly", "decipherOnly") and not usage.key_agreement:
            continue  # cryptography refuses to read these without keyAgreement
        if getattr(usage, attribute):
            mask |= 1 << KEY_USAGE_BITS[flag]
    return mask


def san_entry(name: x509.GeneralName) -> SanEntry:
    """GeneralName CHOICE → {type, value}."""
    match name:
        case x509.DNSName():
            return SanEntry("DNS", name.value)
        case x509.IPAddress():
            return SanEntry("IP", str(name.value))
        case x509.RFC822Name():
            return SanEntry("email", name.value)
        case x509.UniformResourceIdentifier():
            return SanEntry("URI", name.value)
        case x509.DirectoryName():
            return SanEntry("dirName", name.value.rfc4514_string())
        case x509.RegisteredID():
            return SanEntry("registeredID", name.value.dotted_string)
        case x509.OtherName():
            return SanEntry("otherName", f"{name.type_id.dotted_string}:{name.value.hex()}")
    return SanEntry(type(name).__name__, str(name))


def decode_opaque_value(der: bytes) -> str:
    """
    Render an extension value for display.

    DER character strings (custom extensions are UTF8String) decode to their
    text; any other structure is shown as lowercase hex.
    """
    try:
        parsed = core.load(der, strict=True)
    except ValueError:
        return der.hex()
    if isinstance(parsed, _STRING_TYPES):
        return str(parsed.native)
    return der.hex()


def _passthrough(ext: x509.Extension[x509.ExtensionType]) -> PassthroughExt:
    match ext.value:
        case x509.UnrecognizedExtension():
            raw = ext.value.value
        case _:
            raw = ext.value.public_bytes()
    return PassthroughExt(
        oid=ext.oid.dotted_string,
        critical=ext.critical,
        value=decode_opaque_value(raw),
    )


# ─────────────────────── Public Analyzer Class ───────────────────────


class RequestAnalyzer:
    """
    Reconstruct an AnalysisResult from a PEM-encoded PKCS#10 request.

    Returns Result[AnalysisResult]; the only failure kind is PARSE_FAILED.
    """

    def __init__(self, parser: RequestParser) -> None:
        self._parser = parser

    def analyze(self, pem: str) -> Result[AnalysisResult]:
        return (
            self._parser.parse(pem)
            .flat_map(lambda csr: Result.from_computation(
                lambda: self._reconstruct(csr, pem),
                ErrorCode.PARSE_FAILED,
                "Failed to analyze CSR",
            ))
            .peek(lambda analysis: log.info(
                "analyzer.analyzed",
                common_name=analysis.subject.get("commonName"),
                key_type=analysis.public_key.type,
                verified=analysis.verified,
            ))
            .peek_failure(_log_failure)
        )

    def _reconstruct(self, csr: x509.CertificateSigningRequest, pem: str) -> AnalysisResult:
        key_usage: tuple[str, ...] | None = None
        extended_key_usage: tuple[str, ...] | None = None
        subject_alt_name: tuple[SanEntry, ...] | None = None
        others: list[PassthroughExt] = []

        for ext in csr.extensions:
            match ext.value:
                case x509.KeyUsage():
                    key_usage = tuple(key_usage_flags(key_usage_mask_of(ext.value)))
                case x509.ExtendedKeyUsage():
                    extended_key_usage = tuple(oid.dotted_string for oid in ext.value)
                case x509.SubjectAlternativeName():
                    subject_alt_name = tuple(san_entry(name) for name in ext.value)
                case _:
                    others.append(_passthrough(ext))

        return AnalysisResult(
            subject=extract_subject(csr.subject),
            public_key=extract_public_key_info(csr),
            key_usage=key_usage,
            extended_key_usage=extended_key_usage,
            subject_alt_name=subject_alt_name,
            other_extensions=tuple(others),
            signature_algorithm=signature_algorithm_name(csr),
            verified=self._parser.verify(csr),
            pem=pem,
        )


def _log_failure(error: FailureDescription) -> None:
    log.warning("analyzer.parse_failed", reason=error.message, error=error.detail())
