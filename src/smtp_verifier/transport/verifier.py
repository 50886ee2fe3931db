"""Deliver a message through a configured transport and report the outcome.

Network delivery goes through aiosmtplib; pickup-directory delivery writes
an .eml file with aiofiles. Every attempt is made exactly once and every
failure is turned into a DeliveryOutcome rather than an exception.
"""

import asyncio
import contextlib
import copy
import os
import socket
import ssl
import tempfile
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import Message
from email.policy import SMTP as SMTP_POLICY
from email.utils import getaddresses

import aiofiles
import aiofiles.os
import aiosmtplib
import structlog

from smtp_verifier.core import sanitize_for_log
from smtp_verifier.exceptions import (
    CertificateNotFoundError,
    ConfigurationError,
    CredentialError,
    DeliveryCancelledError,
    FilesystemError,
    HostUnreachableError,
    RecipientRejectedError,
    SmtpVerifierError,
    TlsNegotiationError,
)
from smtp_verifier.models import (
    ClientCertificate,
    DeliveryOutcome,
    FailureKind,
    TransportConfig,
)

logger = structlog.get_logger(__name__)

_UNREACHABLE = (
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPTimeoutError,
    aiosmtplib.SMTPServerDisconnected,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)

_KIND_BY_ERROR: list[tuple[type[SmtpVerifierError], FailureKind]] = [
    (ConfigurationError, FailureKind.CONFIGURATION),
    (CredentialError, FailureKind.CREDENTIAL),
    (CertificateNotFoundError, FailureKind.CERTIFICATE_NOT_FOUND),
    (TlsNegotiationError, FailureKind.TLS_NEGOTIATION),
    (HostUnreachableError, FailureKind.UNREACHABLE),
    (RecipientRejectedError, FailureKind.INVALID_RECIPIENT),
    (FilesystemError, FailureKind.FILESYSTEM),
    (DeliveryCancelledError, FailureKind.CANCELLED),
]


def _ssl_error_in_chain(exc: BaseException) -> ssl.SSLError | None:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, aiosmtplib.SMTPRecipientsRefused):
        refused = ", ".join(r.recipient for r in exc.recipients)
        return f"All recipients refused: {refused}"
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        return f"{exc.code} {exc.message}"
    return str(exc) or type(exc).__name__


def classify_error(exc: BaseException, config: TransportConfig) -> DeliveryOutcome:
    """Turn an exception raised during delivery into a failed outcome.

    Args:
        exc: The exception raised by the transport.
        config: The config of the attempt; pickup mode maps OS errors
            to filesystem failures.
    """
    cause = sanitize_for_log(_describe(exc))
    mode = config.mode

    if isinstance(exc, SmtpVerifierError):
        for error_type, kind in _KIND_BY_ERROR:
            if isinstance(exc, error_type):
                return DeliveryOutcome.failed(kind, cause, mode)
        return DeliveryOutcome.failed(FailureKind.DELIVERY, cause, mode)

    if isinstance(exc, asyncio.CancelledError):
        return DeliveryOutcome.failed(FailureKind.CANCELLED, cause or "cancelled", mode)

    if config.is_pickup and isinstance(exc, OSError):
        return DeliveryOutcome.failed(FailureKind.FILESYSTEM, cause, mode)

    ssl_error = _ssl_error_in_chain(exc)
    if ssl_error is not None:
        detail = sanitize_for_log(str(ssl_error))
        return DeliveryOutcome.failed(FailureKind.TLS_NEGOTIATION, detail or cause, mode)

    if isinstance(exc, aiosmtplib.SMTPAuthenticationError):
        return DeliveryOutcome.failed(FailureKind.CREDENTIAL, cause, mode)

    if isinstance(exc, (aiosmtplib.SMTPRecipientsRefused, aiosmtplib.SMTPRecipientRefused)):
        return DeliveryOutcome.failed(FailureKind.INVALID_RECIPIENT, cause, mode)

    if isinstance(exc, _UNREACHABLE):
        return DeliveryOutcome.failed(FailureKind.UNREACHABLE, cause, mode)

    # STARTTLS required but not offered, or refused by the server
    if isinstance(exc, aiosmtplib.SMTPException) and "TLS" in cause.upper():
        return DeliveryOutcome.failed(FailureKind.TLS_NEGOTIATION, cause, mode)

    if isinstance(exc, OSError):
        return DeliveryOutcome.failed(FailureKind.UNREACHABLE, cause, mode)

    return DeliveryOutcome.failed(FailureKind.DELIVERY, cause, mode)


def build_tls_context(config: TransportConfig) -> ssl.SSLContext | None:
    """SSL context for the connection, carrying the client certificate if any.

    Raises:
        ConfigurationError: If the CA file or client certificate cannot be loaded.
    """
    if not config.use_tls:
        return None

    try:
        context = ssl.create_default_context(
            cafile=str(config.ca_file) if config.ca_file else None
        )
        if config.client_certificate is not None:
            _load_client_chain(context, config.client_certificate)
    except (OSError, ssl.SSLError, ValueError) as e:
        raise ConfigurationError(f"Cannot load TLS material: {e}") from e
    return context


def _load_client_chain(context: ssl.SSLContext, cert: ClientCertificate) -> None:
    """Load the matched certificate and its key into the context.

    load_cert_chain() only reads files and takes the first certificate it
    finds, so the leaf is written to a private temporary file on its own.
    """
    leaf = ssl.DER_cert_to_PEM_cert(cert.der).encode("ascii")
    with tempfile.NamedTemporaryFile(
        prefix="smtp-verifier-", suffix=".pem", delete=False
    ) as f:
        f.write(leaf + (cert.key_pem or b""))
        chain_path = f.name
    try:
        context.load_cert_chain(
            certfile=chain_path,
            keyfile=str(cert.key_path) if cert.key_pem is None and cert.key_path else None,
        )
    finally:
        os.unlink(chain_path)


def _envelope(message: Message) -> tuple[str, list[str]]:
    sender = next((addr for _, addr in getaddresses(message.get_all("From", []))), "")
    recipients = [
        addr
        for header in ("To", "Cc", "Bcc")
        for _, addr in getaddresses(message.get_all(header, []))
        if addr
    ]
    return sender, recipients


class DeliveryVerifier:
    """Send one message per call and report whether the transport accepted it.

    send_async() is the awaitable form, submit() returns a future that
    completes when the attempt does, and send() blocks until then.
    """

    async def send_async(self, config: TransportConfig, message: Message) -> DeliveryOutcome:
        """Deliver the message once and return the outcome."""
        log = logger.bind(
            mode=config.mode.value if config.mode else None,
            method=config.delivery_method.value,
        )
        log.info("delivery_started")

        try:
            if config.requires_client_certificate and config.client_certificate is None:
                raise CertificateNotFoundError(
                    "No client certificate available for mutual-TLS delivery"
                )
            if config.is_pickup:
                filename = await self._deliver_to_pickup(config, message)
                log.info("delivery_succeeded", filename=filename)
            else:
                await self._deliver_to_network(config, message)
                log.info("delivery_succeeded", host=config.host, port=config.port)
            return DeliveryOutcome.ok(config.mode)
        except (asyncio.CancelledError, Exception) as e:
            outcome = classify_error(e, config)

        log.error(
            "delivery_failed",
            failure=outcome.failure.value if outcome.failure else None,
            cause=outcome.cause,
        )
        return outcome

    def submit(
        self,
        config: TransportConfig,
        message: Message,
        on_complete: Callable[[DeliveryOutcome], None] | None = None,
    ) -> "Future[DeliveryOutcome]":
        """Start delivery on a worker thread and return at once.

        Args:
            config: Transport configuration.
            message: Message to deliver.
            on_complete: Called with the outcome when the attempt finishes.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smtp-verifier")
        future = executor.submit(lambda: asyncio.run(self.send_async(config, message)))
        executor.shutdown(wait=False)
        if on_complete is not None:
            future.add_done_callback(lambda f: on_complete(f.result()))
        return future

    def send(self, config: TransportConfig, message: Message) -> DeliveryOutcome:
        """Deliver the message and block until the outcome is known.

        Safe to call from inside a running event loop; the attempt runs
        on its own loop in a worker thread.
        """
        return self.submit(config, message).result()

    async def _deliver_to_network(self, config: TransportConfig, message: Message) -> None:
        tls_context = build_tls_context(config)
        credentials = config.credentials

        client = aiosmtplib.SMTP(
            hostname=config.host,
            port=config.port,
            use_tls=False,
            start_tls=config.use_tls,
            tls_context=tls_context,
            username=credentials.username if credentials else None,
            password=credentials.password.get_secret_value() if credentials else None,
            timeout=config.timeout,
        )
        async with client:
            errors, response = await client.send_message(message)

        # Partial refusals come back as a dict instead of an exception
        if errors:
            refused = ", ".join(sorted(errors))
            raise RecipientRejectedError(f"Recipients refused: {refused}")
        logger.debug("smtp_response", response=sanitize_for_log(str(response)))

    async def _deliver_to_pickup(self, config: TransportConfig, message: Message) -> str:
        """Write the message to the pickup directory.

        The directory is never created. The file is written under a
        temporary name and renamed so pickup services only see complete
        messages.
        """
        directory = config.pickup_directory
        if directory is None:
            raise ConfigurationError("Pickup-directory delivery requires a directory path")
        sender, recipients = _envelope(message)
        if not recipients:
            raise RecipientRejectedError("Message has no recipients")

        header = f"X-Sender: {sender}\r\n" + "".join(
            f"X-Receiver: {rcpt}\r\n" for rcpt in recipients
        )
        # Blind recipients travel only in the envelope lines
        visible = copy.copy(message)
        del visible["Bcc"]
        del visible["Resent-Bcc"]
        data = header.encode() + visible.as_bytes(policy=SMTP_POLICY)

        filename = f"{uuid.uuid4()}.eml"
        final_path = directory / filename
        tmp_path = directory / f".{filename}.tmp"

        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.rename(tmp_path, final_path)
        except OSError as e:
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(tmp_path)
            raise FilesystemError(
                f"Cannot write to pickup directory {directory}: {e}"
            ) from e
        return filename


_default_verifier = DeliveryVerifier()


def send(config: TransportConfig, message: Message) -> DeliveryOutcome:
    """Blocking delivery with the default verifier."""
    return _default_verifier.send(config, message)


async def send_async(config: TransportConfig, message: Message) -> DeliveryOutcome:
    """Awaitable delivery with the default verifier."""
    return await _default_verifier.send_async(config, message)
