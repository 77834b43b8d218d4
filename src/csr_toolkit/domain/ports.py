"""
Ports — Protocol-based interfaces for the cryptographic collaborators.

The CSR core decides WHAT goes into a request; these ports define WHO does
the raw cryptography (key generation, ASN.1 encoding, signing, PEM framing,
parsing and signature verification). Adapters satisfy a port simply by
implementing its methods — no inheritance.

  Domain ← Ports (protocols) ← Adapters (cryptography / asn1crypto)

Every fallible port method returns Result; signature verification is the
exception, because an invalid signature is an analysis outcome, not an error.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from csr_toolkit.domain.models import GeneratedRequest, KeySpec
from csr_toolkit.result import Result

if TYPE_CHECKING:
    from cryptography import x509
    from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

    from csr_toolkit.extensions import ComposedExtension


@runtime_checkable
class KeyProvider(Protocol):
    """Port: generate a fresh key pair matching an RSA or ECDSA key spec."""

    def generate(self, key_spec: KeySpec) -> Result[CertificateIssuerPrivateKeyTypes]: ...


@runtime_checkable
class RequestSigner(Protocol):
    """
    Port: assemble, sign and export a PKCS#10 request.

    `sign` packages the composed extensions into a single extensionRequest
    attribute and signs with SHA-256 (RSA PKCS#1 v1.5 or ECDSA by key type).
    `export` PEM-encodes the request and the key pair, encrypting the private
    key with `password` when one is given.
    """

    def sign(
        self,
        private_key: CertificateIssuerPrivateKeyTypes,
        subject: x509.Name,
        extensions: Sequence[ComposedExtension],
    ) -> Result[x509.CertificateSigningRequest]: ...

    def export(
        self,
        csr: x509.CertificateSigningRequest,
        private_key: CertificateIssuerPrivateKeyTypes,
        password: str | None,
    ) -> Result[GeneratedRequest]: ...


@runtime_checkable
class RequestParser(Protocol):
    """Port: decode a PEM request and check its self-signature."""

    def parse(self, pem: str) -> Result[x509.CertificateSigningRequest]: ...

    def verify(self, csr: x509.CertificateSigningRequest) -> bool: ...
