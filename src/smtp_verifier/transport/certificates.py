"""Client certificate lookup by thumbprint.

The trust store is a PEM bundle file or a directory of certificate files,
by default the CA bundle OpenSSL was built with. A store is opened
read-only for the duration of a single query and always closed again.
"""

import re
import ssl
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_pem_private_key,
)

from smtp_verifier.exceptions import ConfigurationError
from smtp_verifier.models.certificate import CertificateQuery, ClientCertificate, StoreScope

if TYPE_CHECKING:
    from smtp_verifier.config import Settings

logger = structlog.get_logger(__name__)

CERTIFICATE_SUFFIXES = (".pem", ".crt", ".cer")
PEM_MARKER = b"-----BEGIN "

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n.+?-----END \1-----\r?\n?", re.DOTALL
)


def default_store_scope(name: str = "root", location: str | Path | None = None) -> StoreScope:
    """Resolve a store scope, falling back to the OpenSSL default verify paths.

    Raises:
        ConfigurationError: If no location is given and OpenSSL reports none.
    """
    if location:
        return StoreScope(name=name, location=Path(location))

    paths = ssl.get_default_verify_paths()
    for candidate in (paths.cafile, paths.capath, paths.openssl_cafile):
        if candidate and Path(candidate).exists():
            return StoreScope(name=name, location=Path(candidate))
    raise ConfigurationError("No trust store location configured and no OS default found")


def store_scope_from_settings(settings: "Settings") -> StoreScope:
    return default_store_scope(settings.trust_store_name, settings.trust_store_path)


def thumbprint_of(cert: x509.Certificate) -> str:
    """SHA-1 fingerprint of the DER encoding, upper-case hex."""
    return cert.fingerprint(hashes.SHA1()).hex().upper()


def _is_certificate_file(path: Path) -> bool:
    # OpenSSL capath entries are hash links named <hash>.0, <hash>.1, ...
    suffix = path.suffix.lower()
    return suffix in CERTIFICATE_SUFFIXES or suffix[1:].isdigit()


def _split_pem(data: bytes) -> tuple[list[bytes], list[bytes]]:
    """Split PEM data into certificate blocks and private key blocks."""
    certs: list[bytes] = []
    keys: list[bytes] = []
    for match in _PEM_BLOCK.finditer(data):
        label = match.group(1)
        if label == b"CERTIFICATE":
            certs.append(match.group(0))
        elif label.endswith(b"PRIVATE KEY"):
            keys.append(match.group(0))
    return certs, keys


def _public_key_der(key) -> bytes:
    return key.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


def matching_key(cert: x509.Certificate, key_blocks: list[bytes]) -> bytes | None:
    """Return the PEM key block whose public half matches the certificate.

    Encrypted or unsupported keys never match.
    """
    if not key_blocks:
        return None
    try:
        expected = _public_key_der(cert.public_key())
    except (ValueError, UnsupportedAlgorithm):
        return None

    for block in key_blocks:
        try:
            key = load_pem_private_key(block, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm):
            continue
        if _public_key_der(key.public_key()) == expected:
            return block
    return None


class TrustStore:
    """Read-only view over a certificate store.

    Use as a context manager; the store's contents are only available
    between open() and close().
    """

    def __init__(self, scope: StoreScope) -> None:
        self.scope = scope
        self._entries: list[tuple[Path, bytes]] | None = None

    @property
    def is_open(self) -> bool:
        return self._entries is not None

    def open(self) -> None:
        location = self.scope.location
        try:
            if location.is_dir():
                files = sorted(
                    p for p in location.iterdir()
                    if p.is_file() and _is_certificate_file(p)
                )
                self._entries = [(p, p.read_bytes()) for p in files]
            else:
                self._entries = [(location, location.read_bytes())]
        except OSError as e:
            raise ConfigurationError(
                f"Cannot open trust store {self.scope.name!r} at {location}: {e}"
            ) from e
        logger.debug(
            "trust_store_opened",
            store=self.scope.name,
            location=str(location),
            files=len(self._entries),
        )

    def close(self) -> None:
        self._entries = None
        logger.debug("trust_store_closed", store=self.scope.name)

    def __enter__(self) -> "TrustStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def certificates(self) -> Iterator[tuple[Path, x509.Certificate, bytes | None]]:
        """Yield (source file, certificate, its private key PEM or None) in store order.

        A key block is paired with a certificate only when its public key
        matches, so a key stored next to one certificate of a bundle is never
        attributed to the others. Entries that cannot be parsed are skipped.
        """
        if self._entries is None:
            raise ConfigurationError(f"Trust store {self.scope.name!r} is not open")

        for path, data in self._entries:
            if PEM_MARKER not in data:
                try:
                    cert = x509.load_der_x509_certificate(data)
                except ValueError as e:
                    logger.warning("trust_store_entry_skipped", file=str(path), error=str(e))
                    continue
                yield path, cert, None
                continue

            cert_blocks, key_blocks = _split_pem(data)
            if not cert_blocks:
                logger.warning(
                    "trust_store_entry_skipped", file=str(path), error="no certificate block"
                )
            for block in cert_blocks:
                try:
                    cert = x509.load_pem_x509_certificate(block)
                except ValueError as e:
                    logger.warning("trust_store_entry_skipped", file=str(path), error=str(e))
                    continue
                yield path, cert, matching_key(cert, key_blocks)


def find_certificate_by_query(
    query: CertificateQuery, key_path: str | Path | None = None
) -> ClientCertificate | None:
    """Return the first certificate matching the query's thumbprint, or None.

    When several entries share a thumbprint the first in enumeration order
    wins. For a bundle that is file order, for a directory it is sorted
    file-name order.

    Args:
        query: Normalized thumbprint and store scope.
        key_path: Private key for the certificate when the store holds none
            matching it.
    """
    with TrustStore(query.store) as store:
        for source, cert, key_pem in store.certificates():
            if thumbprint_of(cert) != query.thumbprint:
                continue
            logger.info(
                "certificate_found",
                thumbprint=query.thumbprint,
                store=query.store.name,
                source=str(source),
            )
            return ClientCertificate(
                thumbprint=query.thumbprint,
                subject=cert.subject.rfc4514_string(),
                der=cert.public_bytes(Encoding.DER),
                source=source,
                key_pem=key_pem,
                key_path=None if key_pem or key_path is None else Path(key_path),
            )

    logger.warning("certificate_not_found", thumbprint=query.thumbprint, store=query.store.name)
    return None


def find_certificate(
    thumbprint: str,
    store: StoreScope | None = None,
    key_path: str | Path | None = None,
) -> ClientCertificate | None:
    """Look up a certificate by thumbprint, in the OS root store by default.

    Raises:
        ConfigurationError: If the thumbprint is malformed or the store is unreadable.
    """
    query = CertificateQuery(thumbprint=thumbprint, store=store or default_store_scope())
    return find_certificate_by_query(query, key_path=key_path)

