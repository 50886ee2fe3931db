"""Delivery outcome models."""

from dataclasses import dataclass
from enum import Enum

from smtp_verifier.exceptions import (
    CertificateNotFoundError,
    ConfigurationError,
    CredentialError,
    DeliveryCancelledError,
    DeliveryError,
    FilesystemError,
    HostUnreachableError,
    RecipientRejectedError,
    SmtpVerifierError,
    TlsNegotiationError,
)
from smtp_verifier.models.transport import DeliveryMode


class FailureKind(str, Enum):
    """Classification of a failed delivery attempt."""

    CONFIGURATION = "configuration"
    CREDENTIAL = "credential"
    CERTIFICATE_NOT_FOUND = "certificate-not-found"
    TLS_NEGOTIATION = "tls-negotiation"
    UNREACHABLE = "unreachable"
    INVALID_RECIPIENT = "invalid-recipient"
    FILESYSTEM = "filesystem"
    CANCELLED = "cancelled"
    DELIVERY = "delivery"


_ERROR_TYPES: dict[FailureKind, type[SmtpVerifierError]] = {
    FailureKind.CONFIGURATION: ConfigurationError,
    FailureKind.CREDENTIAL: CredentialError,
    FailureKind.CERTIFICATE_NOT_FOUND: CertificateNotFoundError,
    FailureKind.TLS_NEGOTIATION: TlsNegotiationError,
    FailureKind.UNREACHABLE: HostUnreachableError,
    FailureKind.INVALID_RECIPIENT: RecipientRejectedError,
    FailureKind.FILESYSTEM: FilesystemError,
    FailureKind.CANCELLED: DeliveryCancelledError,
    FailureKind.DELIVERY: DeliveryError,
}


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt.

    Attributes:
        success: True when the message was handed off without error.
        failure: Failure classification, None on success.
        cause: Human-readable error description, None on success.
        mode: Delivery mode of the attempt, when known.
    """

    success: bool
    failure: FailureKind | None = None
    cause: str | None = None
    mode: DeliveryMode | None = None

    @classmethod
    def ok(cls, mode: DeliveryMode | None = None) -> "DeliveryOutcome":
        return cls(success=True, mode=mode)

    @classmethod
    def failed(
        cls, failure: FailureKind, cause: str, mode: DeliveryMode | None = None
    ) -> "DeliveryOutcome":
        return cls(success=False, failure=failure, cause=cause, mode=mode)

    @property
    def error_type(self) -> type[SmtpVerifierError] | None:
        """Exception class matching the failure kind."""
        if self.failure is None:
            return None
        return _ERROR_TYPES[self.failure]

    def raise_for_failure(self) -> None:
        """Raise the typed exception for a failed outcome; no-op on success."""
        error_type = self.error_type
        if error_type is not None:
            raise error_type(self.cause or self.failure.value)  # type: ignore[union-attr]
