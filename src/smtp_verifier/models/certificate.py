"""Certificate lookup models."""

import re
from dataclasses import dataclass, field
from pathlib import Path

from smtp_verifier.exceptions import ConfigurationError

THUMBPRINT_LENGTH = 40

_SEPARATORS = re.compile(r"[\s:]")
_HEX = re.compile(r"^[0-9A-F]+$")


def normalize_thumbprint(thumbprint: str) -> str:
    """Normalize a thumbprint to 40 upper-case hex characters.

    Colons and whitespace, as printed by openssl and certificate viewers,
    are stripped before validation.

    Raises:
        ConfigurationError: If the result is not 40 hex characters.
    """
    cleaned = _SEPARATORS.sub("", thumbprint or "").upper()
    if len(cleaned) != THUMBPRINT_LENGTH or not _HEX.match(cleaned):
        raise ConfigurationError(
            f"Thumbprint must be {THUMBPRINT_LENGTH} hex characters, got {thumbprint!r}"
        )
    return cleaned


@dataclass(frozen=True)
class StoreScope:
    """Which trust store to search.

    Attributes:
        name: Logical store name, e.g. "root".
        location: PEM bundle file or directory of PEM files.
    """

    name: str
    location: Path


@dataclass(frozen=True)
class CertificateQuery:
    """A thumbprint lookup against one trust store."""

    thumbprint: str
    store: StoreScope

    def __post_init__(self) -> None:
        object.__setattr__(self, "thumbprint", normalize_thumbprint(self.thumbprint))


@dataclass(frozen=True)
class ClientCertificate:
    """A certificate resolved from a trust store.

    Attributes:
        thumbprint: Upper-case SHA-1 fingerprint of the DER encoding.
        subject: RFC 4514 subject string.
        der: DER-encoded certificate.
        source: File the certificate was read from. A bundle may hold many
            certificates, so the handshake uses der rather than this file.
        key_pem: Private key stored alongside this certificate, if any.
        key_path: Private key file for the TLS handshake when key_pem is None.
    """

    thumbprint: str
    subject: str
    der: bytes
    source: Path
    key_path: Path | None = None
    key_pem: bytes | None = field(default=None, repr=False)
