"""
Cryptography adapter — key generation, signing, export, parsing, verification.

Adapter layer — implements the KeyProvider, RequestSigner and RequestParser
ports with cryptography (PyCA). All exceptions are caught at this boundary
via Result.from_computation(); nothing raised by the library reaches the
assembler or the analyzer.

Signing always uses SHA-256: RSA keys sign with PKCS#1 v1.5
(sha256WithRSAEncryption), EC keys with ECDSA (ecdsa-with-SHA256).
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

from csr_toolkit.domain.models import EcdsaKeySpec, GeneratedRequest, KeySpec, RsaKeySpec
from csr_toolkit.extensions import ComposedExtension
from csr_toolkit.failure import ErrorCode
from csr_toolkit.result import Result

log = structlog.get_logger()

RSA_PUBLIC_EXPONENT = 65537

_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}


class CryptographyKeyProvider:
    """
    Generate RSA or EC private keys.

    Implements the KeyProvider port.
    """

    def generate(self, key_spec: KeySpec) -> Result[CertificateIssuerPrivateKeyTypes]:
        return Result.from_computation(
            lambda: self._do_generate(key_spec),
            ErrorCode.GENERATION_FAILED,
            "Key pair generation failed",
        )

    def _do_generate(self, key_spec: KeySpec) -> CertificateIssuerPrivateKeyTypes:
        match key_spec:
            case RsaKeySpec(bits=bits):
                return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=bits)
            case EcdsaKeySpec(curve=curve):
                return ec.generate_private_key(_CURVES[curve]())
        raise ValueError(f"Unsupported key spec: {key_spec!r}")


class CryptographyRequestSigner:
    """
    Build, sign and PEM-export PKCS#10 requests.

    Implements the RequestSigner port. Extensions added to the builder are
    serialized by cryptography into one extensionRequest attribute.
    """

    def sign(
        self,
        private_key: CertificateIssuerPrivateKeyTypes,
        subject: x509.Name,
        extensions: Sequence[ComposedExtension],
    ) -> Result[x509.CertificateSigningRequest]:
        return Result.from_computation(
            lambda: self._do_sign(private_key, subject, extensions),
            ErrorCode.GENERATION_FAILED,
            "Failed to sign certificate request",
        )

    def _do_sign(
        self,
        private_key: CertificateIssuerPrivateKeyTypes,
        subject: x509.Name,
        extensions: Sequence[ComposedExtension],
    ) -> x509.CertificateSigningRequest:
        builder = x509.CertificateSigningRequestBuilder().subject_name(subject)
        for ext in extensions:
            builder = builder.add_extension(ext.value, critical=ext.critical)
        return builder.sign(private_key, hashes.SHA256())

    def export(
        self,
        csr: x509.CertificateSigningRequest,
        private_key: CertificateIssuerPrivateKeyTypes,
        password: str | None,
    ) -> Result[GeneratedRequest]:
        return Result.from_computation(
            lambda: self._do_export(csr, private_key, password),
            ErrorCode.GENERATION_FAILED,
            "Failed to export PEM material",
        )

    def _do_export(
        self,
        csr: x509.CertificateSigningRequest,
        private_key: CertificateIssuerPrivateKeyTypes,
        password: str | None,
    ) -> GeneratedRequest:
        # PKCS#8 either way; with a password this becomes ENCRYPTED PRIVATE KEY.
        encryption: serialization.KeySerializationEncryption = (
            serialization.BestAvailableEncryption(password.encode("utf-8"))
            if password
            else serialization.NoEncryption()
        )
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return GeneratedRequest(
            csr_pem=csr.public_bytes(serialization.Encoding.PEM).decode("ascii"),
            private_key_pem=private_pem.decode("ascii"),
            public_key_pem=public_pem.decode("ascii"),
        )


class CryptographyRequestParser:
    """
    Decode PEM requests and verify their self-signature.

    Implements the RequestParser port.
    """

    def parse(self, pem: str) -> Result[x509.CertificateSigningRequest]:
        return Result.from_computation(
            lambda: self._do_parse(pem),
            ErrorCode.PARSE_FAILED,
            "Failed to analyze CSR",
        )

    def _do_parse(self, pem: str) -> x509.CertificateSigningRequest:
        csr = x509.load_pem_x509_csr(pem.strip().encode("utf-8"))
        # Extensions decode lazily; force it here so malformed ones fail as parse errors.
        _ = csr.extensions
        return csr

    def verify(self, csr: x509.CertificateSigningRequest) -> bool:
        """Signature check; any inability to verify counts as not verified."""
        try:
            return csr.is_signature_valid
        except (InvalidSignature, UnsupportedAlgorithm, ValueError) as e:
            log.warning("parser.verify_error", error=str(e), error_type=type(e).__name__)
            return False
