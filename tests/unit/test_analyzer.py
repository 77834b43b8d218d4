"""
Unit tests for the request analyzer.

Uses real cryptography: requests are generated once per session (see
conftest) and analysed back, which exercises the round-trip law between
the assembler and the analyzer. Foreign requests carrying extensions the
assembler never emits are built directly with cryptography.
"""

from __future__ import annotations

import base64

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from csr_toolkit.analyzer import RequestAnalyzer, decode_opaque_value, extract_subject
from csr_toolkit.assembler import RequestAssembler
from csr_toolkit.domain.models import (
    EcdsaKeySpec,
    GeneratedRequest,
    KeyUsageExt,
    SanEntry,
    PublicKeyInfo,
)
from csr_toolkit.failure import ErrorCode
from tests.conftest import FULL_SUBJECT, make_descriptor
from tests.result_assertions import ResultAssertions


def _tampered(pem: str) -> str:
    """Flip the last byte of the DER (inside the signature) and re-armor."""
    der = x509.load_pem_x509_csr(pem.encode()).public_bytes(serialization.Encoding.DER)
    broken = der[:-1] + bytes([der[-1] ^ 0x01])
    encoded = base64.b64encode(broken).decode("ascii")
    body = "\n".join(encoded[i:i + 64] for i in range(0, len(encoded), 64))
    return f"-----BEGIN CERTIFICATE REQUEST-----\n{body}\n-----END CERTIFICATE REQUEST-----\n"


def _foreign_request(extensions: list[tuple[x509.ExtensionType, bool]]) -> str:
    key = ec.generate_private_key(ec.SECP256R1())
    builder = x509.CertificateSigningRequestBuilder().subject_name(
        x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "foreign.example.com")])
    )
    for value, critical in extensions:
        builder = builder.add_extension(value, critical=critical)
    csr = builder.sign(key, hashes.SHA256())
    return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")


# ─────────────────────── Round Trip ───────────────────────


class TestRoundTripRsa:
    """
    GIVEN an RSA-2048 request generated with a full subject and every extension kind
    WHEN analysed
    THEN every supplied field comes back unchanged.
    """

    def test_subject_is_reproduced(self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest) -> None:
        analysis = analyzer.analyze(rsa_request.csr_pem).value()
        assert analysis.subject == {
            "country": FULL_SUBJECT.country,
            "state": FULL_SUBJECT.state,
            "locality": FULL_SUBJECT.locality,
            "organization": FULL_SUBJECT.organization,
            "organizationalUnit": FULL_SUBJECT.organizational_unit,
            "commonName": FULL_SUBJECT.common_name,
            "email": FULL_SUBJECT.email,
        }

    def test_public_key_and_signature(self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest) -> None:
        analysis = analyzer.analyze(rsa_request.csr_pem).value()
        assert analysis.public_key == PublicKeyInfo(type="RSA", bits=2048)
        assert analysis.signature_algorithm == "sha256WithRSAEncryption"
        assert analysis.verified is True
        assert analysis.pem == rsa_request.csr_pem

    def test_key_usage_flags(self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest) -> None:
        analysis = analyzer.analyze(rsa_request.csr_pem).value()
        assert set(analysis.key_usage or ()) == {"digitalSignature", "keyEncipherment"}

    def test_eku_oids_in_caller_order(self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest) -> None:
        analysis = analyzer.analyze(rsa_request.csr_pem).value()
        assert analysis.extended_key_usage == (
            "1.3.6.1.5.5.7.3.1",
            "1.3.6.1.5.5.7.3.2",
            "1.3.6.1.4.1.311.20.2.2",
        )

    def test_san_entries_in_order(self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest) -> None:
        analysis = analyzer.analyze(rsa_request.csr_pem).value()
        assert analysis.subject_alt_name == (
            SanEntry("DNS", "api.example.com"),
            SanEntry("DNS", "*.api.example.com"),
            SanEntry("IP", "192.168.1.10"),
            SanEntry("email", "ops@example.com"),
            SanEntry("URI", "https://example.com/service"),
        )

    def test_custom_extension_is_passed_through_decoded(
        self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest
    ) -> None:
        extensions = analyzer.analyze(rsa_request.csr_pem).value().extensions_dict()
        assert extensions["1.2.3.4.5"] == {"critical": False, "value": "custom-value"}


class TestRoundTripEcdsa:
    def test_curve_and_signature(self, analyzer: RequestAnalyzer, ecdsa_request: GeneratedRequest) -> None:
        """
        GIVEN a P-256 request with only a Common Name
        WHEN analysed
        THEN the key reports ECDSA/P-256/256 and no extensions are present.
        """
        analysis = analyzer.analyze(ecdsa_request.csr_pem).value()
        assert analysis.public_key.to_dict() == {"type": "ECDSA", "bits": 256, "curve": "P-256"}
        assert analysis.signature_algorithm == "ecdsa-with-SHA256"
        assert analysis.verified is True
        assert analysis.subject == {"commonName": "test.example.com"}
        assert analysis.extensions_dict() == {}

    def test_key_agreement_with_decipher_only(
        self, assembler: RequestAssembler, analyzer: RequestAnalyzer
    ) -> None:
        generated = assembler.generate(make_descriptor(
            key_spec=EcdsaKeySpec("P-256"),
            key_usage=KeyUsageExt(("keyAgreement", "decipherOnly")),
        )).value()
        analysis = analyzer.analyze(generated.csr_pem).value()
        assert set(analysis.key_usage or ()) == {"keyAgreement", "decipherOnly"}


# ─────────────────────── Verification & Parse Errors ───────────────────────


class TestVerification:
    def test_tampered_signature_is_not_an_error(
        self, analyzer: RequestAnalyzer, rsa_request: GeneratedRequest
    ) -> None:
        """
        GIVEN a generated request whose signature bytes were altered
        WHEN analysed
        THEN analysis succeeds with verified=False.
        """
        result = analyzer.analyze(_tampered(rsa_request.csr_pem))
        analysis = ResultAssertions.assert_success(result)
        assert analysis.verified is False
        assert analysis.subject["commonName"] == "api.example.com"


class TestParseFailures:
    @pytest.mark.parametrize(
        "pem",
        [
            "not a csr",
            "-----BEGIN CERTIFICATE REQUEST-----\nAAAA\n-----END CERTIFICATE REQUEST-----\n",
        ],
    )
    def test_garbage_is_parse_failed(self, analyzer: RequestAnalyzer, pem: str) -> None:
        result = analyzer.analyze(pem)
        error = ResultAssertions.assert_failure(result, ErrorCode.PARSE_FAILED)
        assert error.message == "Failed to analyze CSR"


# ─────────────────────── Foreign Requests ───────────────────────


class TestForeignExtensions:
    def test_structured_extension_is_reported_as_hex(self, analyzer: RequestAnalyzer) -> None:
        """
        GIVEN a request with a critical BasicConstraints(ca=True)
        WHEN analysed
        THEN it is passed through by OID with its DER value in hex.
        """
        pem = _foreign_request([(x509.BasicConstraints(ca=True, path_length=None), True)])
        extensions = analyzer.analyze(pem).value().extensions_dict()
        assert extensions["2.5.29.19"] == {"critical": True, "value": "30030101ff"}

    def test_non_string_custom_value_is_hex(self, analyzer: RequestAnalyzer) -> None:
        ext = x509.UnrecognizedExtension(x509.ObjectIdentifier("1.2.3.99"), b"\x02\x01\x05")
        extensions = analyzer.analyze(_foreign_request([(ext, False)])).value().extensions_dict()
        assert extensions["1.2.3.99"] == {"critical": False, "value": "020105"}

    def test_directory_name_and_registered_id_sans(self, analyzer: RequestAnalyzer) -> None:
        san = x509.SubjectAlternativeName([
            x509.DirectoryName(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "dir")])),
            x509.RegisteredID(x509.ObjectIdentifier("1.2.3.4")),
        ])
        analysis = analyzer.analyze(_foreign_request([(san, False)])).value()
        assert analysis.subject_alt_name == (
            SanEntry("dirName", "CN=dir"),
            SanEntry("registeredID", "1.2.3.4"),
        )


class TestHelpers:
    def test_extract_subject_renames_known_and_keeps_unknown(self) -> None:
        name = x509.Name([
            x509.NameAttribute(NameOID.DOMAIN_COMPONENT, "example"),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "first"),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "second"),
            x509.NameAttribute(NameOID.COMMON_NAME, "host"),
        ])
        assert extract_subject(name) == {
            "DC": "example",
            "organizationalUnit": "second",
            "commonName": "host",
        }

    def test_decode_opaque_value(self) -> None:
        assert decode_opaque_value(b"\x0c\x02hi") == "hi"
        assert decode_opaque_value(b"\x16\x03abc") == "abc"
        assert decode_opaque_value(b"\x04\x01\x00") == "040100"
