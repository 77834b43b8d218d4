"""Usage templates — preset Key Usage / Extended Key Usage combinations."""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType

from csr_toolkit.domain.models import (
    CertificateRequestDescriptor,
    ExtendedKeyUsageExt,
    KeyUsageExt,
)


@dataclass(frozen=True, slots=True)
class UsageTemplate:
    name: str
    key_usage: tuple[str, ...]
    extended_key_usage: tuple[str, ...]

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "keyUsage": list(self.key_usage),
            "extendedKeyUsage": list(self.extended_key_usage),
        }


TEMPLATES: MappingProxyType[str, UsageTemplate] = MappingProxyType({
    t.name: t
    for t in (
        UsageTemplate("webserver", ("digitalSignature", "keyEncipherment"), ("serverAuth",)),
        UsageTemplate("codesigning", ("digitalSignature",), ("codeSigning",)),
        UsageTemplate("email", ("digitalSignature", "keyEncipherment"), ("emailProtection",)),
        UsageTemplate("clientauth", ("digitalSignature", "keyEncipherment"), ("clientAuth",)),
        UsageTemplate("custom", (), ()),
    )
})


def apply_template(descriptor: CertificateRequestDescriptor) -> CertificateRequestDescriptor:
    """
    Fill Key Usage / EKU from the descriptor's template where the caller gave none.

    Explicit caller values always win. Unknown template names are left for
    the validator to reject.
    """
    template = TEMPLATES.get(descriptor.template or "")
    if template is None:
        return descriptor
    key_usage = descriptor.key_usage
    if key_usage is None and template.key_usage:
        key_usage = KeyUsageExt(template.key_usage)
    extended_key_usage = descriptor.extended_key_usage
    if extended_key_usage is None and template.extended_key_usage:
        extended_key_usage = ExtendedKeyUsageExt(template.extended_key_usage)
    return replace(descriptor, key_usage=key_usage, extended_key_usage=extended_key_usage)
