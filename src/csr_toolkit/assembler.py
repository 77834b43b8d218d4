"""
Request assembler — the generation pipeline.

Pure orchestration: all cryptography is injected via ports, so the
pipeline can be exercised with mocks. Stages are connected with flat_map
and the first failure short-circuits the rest:

  apply template
    → validate every field (fail fast, no key generated yet)
      → compose subject DN + extensions
        → generate key pair (KeyProvider)
          → assemble and sign (RequestSigner, SHA-256)
            → export PEM triple, private key encrypted if a password is set

Nothing is retained between calls; the only observable effect is the
returned GeneratedRequest.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPrivateKeyTypes

from csr_toolkit.domain.models import (
    CertificateRequestDescriptor,
    EcdsaKeySpec,
    GeneratedRequest,
    RsaKeySpec,
)
from csr_toolkit.domain.ports import KeyProvider, RequestSigner
from csr_toolkit.extensions import ComposedExtension, compose_extensions
from csr_toolkit.failure import ErrorCode, FailureDescription
from csr_toolkit.result import Result
from csr_toolkit.subject import compose_subject, subject_dn_string
from csr_toolkit.templates import apply_template
from csr_toolkit.validation import validate_descriptor

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class _SigningInput:
    private_key: CertificateIssuerPrivateKeyTypes
    subject: x509.Name
    extensions: list[ComposedExtension]


def _key_label(descriptor: CertificateRequestDescriptor) -> str:
    match descriptor.key_spec:
        case RsaKeySpec(bits=bits):
            return f"RSA-{bits}"
        case EcdsaKeySpec(curve=curve):
            return f"ECDSA-{curve}"
    return "unknown"


def _log_failure(error: FailureDescription) -> None:
    if error.code.is_validation:
        log.info("assembler.rejected", code=error.code.value, reason=error.message)
    else:
        log.error(
            "assembler.failed",
            code=error.code.value,
            reason=error.message,
            error=error.detail(),
        )


class RequestAssembler:
    """
    Turn a descriptor into a signed, PEM-encoded request and its key pair.

    Returns Result[GeneratedRequest]; failures carry a validation ErrorCode
    (caller-fixable) or GENERATION_FAILED (internal).
    """

    def __init__(self, key_provider: KeyProvider, signer: RequestSigner) -> None:
        self._key_provider = key_provider
        self._signer = signer

    def generate(self, descriptor: CertificateRequestDescriptor) -> Result[GeneratedRequest]:
        prepared = apply_template(descriptor)
        return (
            validate_descriptor(prepared)
            .flat_map(self._build_signing_input)
            .flat_map(lambda signing: self._sign_and_export(signing, descriptor.key_password))
            .peek(lambda _: log.info(
                "assembler.generated",
                subject=subject_dn_string(prepared.subject),
                key=_key_label(prepared),
                extensions=len(prepared.extensions),
                encrypted_key=bool(descriptor.key_password),
            ))
            .peek_failure(_log_failure)
        )

    def _build_signing_input(
        self, descriptor: CertificateRequestDescriptor
    ) -> Result[_SigningInput]:
        subject = Result.from_computation(
            lambda: compose_subject(descriptor.subject),
            ErrorCode.GENERATION_FAILED,
            "Failed to encode subject name",
        )
        return subject.flat_map(
            lambda name: compose_extensions(descriptor.extensions).flat_map(
                lambda extensions: self._key_provider.generate(descriptor.key_spec).map(
                    lambda private_key: _SigningInput(private_key, name, extensions)
                )
            )
        )

    def _sign_and_export(
        self, signing: _SigningInput, password: str | None
    ) -> Result[GeneratedRequest]:
        return self._signer.sign(signing.private_key, signing.subject, signing.extensions).flat_map(
            lambda csr: self._signer.export(csr, signing.private_key, password)
        )
