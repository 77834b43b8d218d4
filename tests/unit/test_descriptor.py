"""
Unit tests for request-body mapping.

The mapping only reshapes input; content rules are the validators' job,
so invalid values must pass through here untouched.
"""

from __future__ import annotations

import pytest

from csr_toolkit.descriptor import GenerateRequestBody, read_key_spec, to_descriptor
from csr_toolkit.domain.models import EcdsaKeySpec, RsaKeySpec, SanEntry, UnsupportedKeySpec


class TestReadKeySpec:
    def test_defaults_to_rsa_2048(self) -> None:
        assert read_key_spec(None, None, None) == RsaKeySpec(2048)

    def test_rsa_with_explicit_size(self) -> None:
        assert read_key_spec("RSA", 4096, None) == RsaKeySpec(4096)

    def test_rsa_size_is_not_range_checked_here(self) -> None:
        assert read_key_spec("RSA", 1024, None) == RsaKeySpec(1024)

    def test_zero_size_is_kept_for_validation(self) -> None:
        """
        GIVEN keySize 0
        WHEN read
        THEN it stays 0 instead of falling back to the 2048-bit default.
        """
        assert read_key_spec("RSA", 0, None) == RsaKeySpec(0)

    def test_ecdsa_defaults_to_p256(self) -> None:
        assert read_key_spec("ECDSA", None, None) == EcdsaKeySpec("P-256")

    @pytest.mark.parametrize(
        ("alias", "curve"),
        [("prime256v1", "P-256"), ("secp384r1", "P-384"), ("secp521r1", "P-521"), ("P-384", "P-384")],
    )
    def test_curve_aliases(self, alias: str, curve: str) -> None:
        """
        GIVEN an OpenSSL or NIST curve name
        WHEN read
        THEN it resolves to the NIST name.
        """
        assert read_key_spec("ECDSA", None, alias) == EcdsaKeySpec(curve)

    def test_key_type_is_case_insensitive(self) -> None:
        assert read_key_spec("ec", None, None) == EcdsaKeySpec("P-256")

    def test_unknown_key_type_is_carried_through(self) -> None:
        """
        GIVEN keyType "DSA"
        WHEN read
        THEN the raw value is kept so the validator can reject it in order.
        """
        assert read_key_spec("DSA", None, None) == UnsupportedKeySpec("DSA")


class TestToDescriptor:
    def test_camel_case_body_maps_to_descriptor(self) -> None:
        """
        GIVEN a camelCase body with subject, key spec and extensions
        WHEN mapped
        THEN every field lands on the descriptor.
        """
        body = GenerateRequestBody.model_validate({
            "keyType": "ECDSA",
            "curveName": "secp384r1",
            "commonName": "api.example.com",
            "organizationalUnit": "Platform",
            "country": "US",
            "subjectAltNames": [{"type": "DNS", "value": "api.example.com"}],
            "keyUsage": ["digitalSignature"],
            "extendedKeyUsage": ["serverAuth"],
            "customExtensions": [{"oid": "1.2.3.4", "critical": True, "value": "v"}],
            "password": "Secret123!",
            "template": "webserver",
        })
        descriptor = to_descriptor(body)

        assert descriptor.subject.common_name == "api.example.com"
        assert descriptor.subject.organizational_unit == "Platform"
        assert descriptor.subject.country == "US"
        assert descriptor.key_spec == EcdsaKeySpec("P-384")
        assert descriptor.subject_alt_name is not None
        assert descriptor.subject_alt_name.entries == (SanEntry("DNS", "api.example.com"),)
        assert descriptor.key_usage is not None
        assert descriptor.key_usage.flags == ("digitalSignature",)
        assert descriptor.extended_key_usage is not None
        assert descriptor.extended_key_usage.usages == ("serverAuth",)
        assert descriptor.custom_extensions[0].critical is True
        assert descriptor.key_password == "Secret123!"
        assert descriptor.template == "webserver"

    def test_blank_optional_fields_become_absent(self) -> None:
        body = GenerateRequestBody(common_name="a.example.com", country="", state="  ", password="")
        descriptor = to_descriptor(body)
        assert descriptor.subject.country is None
        assert descriptor.subject.state is None
        assert descriptor.key_password is None

    def test_missing_common_name_is_left_for_validation(self) -> None:
        descriptor = to_descriptor(GenerateRequestBody())
        assert descriptor.subject.common_name == ""

    def test_blank_san_entries_are_dropped_and_values_trimmed(self) -> None:
        """
        GIVEN SAN entries with blank values and surrounding spaces
        WHEN mapped
        THEN blanks are dropped and the rest trimmed.
        """
        body = GenerateRequestBody.model_validate({
            "commonName": "a.example.com",
            "subjectAltNames": [
                {"type": "DNS", "value": "  www.example.com "},
                {"type": "DNS", "value": ""},
                {"type": "IP", "value": "   "},
            ],
        })
        descriptor = to_descriptor(body)
        assert descriptor.subject_alt_name is not None
        assert descriptor.subject_alt_name.entries == (SanEntry("DNS", "www.example.com"),)

    def test_only_blank_san_entries_yield_no_extension(self) -> None:
        body = GenerateRequestBody.model_validate({
            "commonName": "a.example.com",
            "subjectAltNames": [{"type": "DNS", "value": ""}],
        })
        assert to_descriptor(body).subject_alt_name is None

    def test_empty_key_usage_list_is_absent(self) -> None:
        body = GenerateRequestBody.model_validate({"commonName": "a.example.com", "keyUsage": []})
        assert to_descriptor(body).key_usage is None

    def test_unknown_key_type_reaches_descriptor(self) -> None:
        body = GenerateRequestBody.model_validate({"commonName": "", "keyType": "DSA"})
        assert to_descriptor(body).key_spec == UnsupportedKeySpec("DSA")
