"""
csr_toolkit — PKCS#10 Certificate Signing Request generator and analyzer.

Builds signed, PEM-encoded CSRs from a declarative descriptor (subject,
key spec, extensions) and turns PEM requests back into the same
descriptor shape for display and signature verification.

Built on Railway-Oriented Programming: every pipeline stage returns a
Result and the first failure short-circuits the rest.
"""

__version__ = "1.1.0"
