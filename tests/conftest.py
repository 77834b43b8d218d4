"""
Shared test fixtures for the csr-toolkit test suite.

Key generation dominates test time, so fully generated requests used by
several modules are built once per session.
"""

from __future__ import annotations

import pytest

from csr_toolkit.adapters.crypto import (
    CryptographyKeyProvider,
    CryptographyRequestParser,
    CryptographyRequestSigner,
)
from csr_toolkit.analyzer import RequestAnalyzer
from csr_toolkit.assembler import RequestAssembler
from csr_toolkit.domain.models import (
    CertificateRequestDescriptor,
    CustomExt,
    EcdsaKeySpec,
    ExtendedKeyUsageExt,
    GeneratedRequest,
    KeyUsageExt,
    RsaKeySpec,
    SanEntry,
    Subject,
    SubjectAltNameExt,
)


def make_descriptor(**overrides: object) -> CertificateRequestDescriptor:
    """A minimal valid descriptor (CN only, RSA-2048); keyword overrides replace fields."""
    fields: dict[str, object] = {
        "subject": Subject(common_name="test.example.com"),
        "key_spec": RsaKeySpec(2048),
    }
    fields.update(overrides)
    return CertificateRequestDescriptor(**fields)  # type: ignore[arg-type]


FULL_SUBJECT = Subject(
    common_name="api.example.com",
    country="US",
    state="California",
    locality="San Francisco",
    organization="Example Corp",
    organizational_unit="Platform",
    email="admin@example.com",
)


@pytest.fixture(scope="session")
def assembler() -> RequestAssembler:
    return RequestAssembler(
        key_provider=CryptographyKeyProvider(),
        signer=CryptographyRequestSigner(),
    )


@pytest.fixture(scope="session")
def analyzer() -> RequestAnalyzer:
    return RequestAnalyzer(parser=CryptographyRequestParser())


@pytest.fixture(scope="session")
def rsa_request(assembler: RequestAssembler) -> GeneratedRequest:
    """RSA-2048 request carrying every extension kind and a full subject."""
    descriptor = make_descriptor(
        subject=FULL_SUBJECT,
        key_usage=KeyUsageExt(("digitalSignature", "keyEncipherment")),
        extended_key_usage=ExtendedKeyUsageExt(("serverAuth", "clientAuth", "1.3.6.1.4.1.311.20.2.2")),
        subject_alt_name=SubjectAltNameExt((
            SanEntry("DNS", "api.example.com"),
            SanEntry("DNS", "*.api.example.com"),
            SanEntry("IP", "192.168.1.10"),
            SanEntry("email", "ops@example.com"),
            SanEntry("URI", "https://example.com/service"),
        )),
        custom_extensions=(CustomExt("1.2.3.4.5", critical=False, value="custom-value"),),
    )
    return assembler.generate(descriptor).value()


@pytest.fixture(scope="session")
def ecdsa_request(assembler: RequestAssembler) -> GeneratedRequest:
    """ECDSA P-256 request with only a Common Name."""
    return assembler.generate(make_descriptor(key_spec=EcdsaKeySpec("P-256"))).value()
