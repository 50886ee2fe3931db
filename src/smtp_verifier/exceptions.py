"""Custom exceptions for SMTP Verifier.

This module defines the exception hierarchy used throughout the
smtp_verifier package for error handling and reporting. The delivery
verifier maps each of these to a distinct failure kind on the outcome
it returns.
"""


class SmtpVerifierError(Exception):
    """Base exception for all SMTP Verifier errors.

    All custom exceptions in the smtp_verifier package inherit from
    this class, allowing for broad exception catching when needed.

    Attributes:
        message: A human-readable description of the error.
    """

    def __init__(self, message: str = "An error occurred in SMTP Verifier") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: A description of the error that occurred.
        """
        self.message = message
        super().__init__(self.message)


class ConfigurationError(SmtpVerifierError):
    """Raised when a transport configuration is malformed or incomplete.

    This exception is raised before any connection is attempted, when a
    required field is missing or contradicts another field.
    """

    def __init__(self, message: str = "Configuration error") -> None:
        super().__init__(message)


class CredentialError(SmtpVerifierError):
    """Raised when credentials are missing or rejected by the server."""

    def __init__(self, message: str = "Credential error") -> None:
        super().__init__(message)


class CertificateNotFoundError(SmtpVerifierError):
    """Raised when no certificate in the trust store matches a thumbprint.

    Attributes:
        thumbprint: The thumbprint that was searched for.
    """

    def __init__(
        self,
        message: str = "Certificate not found",
        thumbprint: str | None = None,
    ) -> None:
        """Initialize the exception with an optional message and thumbprint.

        Args:
            message: A description of the lookup failure.
            thumbprint: The thumbprint that had no match.
        """
        self.thumbprint = thumbprint
        super().__init__(message)


class TlsNegotiationError(SmtpVerifierError):
    """Raised when the TLS handshake or STARTTLS upgrade fails."""

    def __init__(self, message: str = "TLS negotiation failed") -> None:
        super().__init__(message)


class DeliveryError(SmtpVerifierError):
    """Raised when email delivery fails.

    This is the generic transport-reported failure. More specific
    delivery failures subclass it.
    """

    def __init__(self, message: str = "Email delivery error") -> None:
        super().__init__(message)


class HostUnreachableError(DeliveryError):
    """Raised when the SMTP host cannot be reached or the connection times out."""

    def __init__(self, message: str = "SMTP host unreachable") -> None:
        super().__init__(message)


class RecipientRejectedError(DeliveryError):
    """Raised when the server refuses one or more recipients."""

    def __init__(self, message: str = "Recipient rejected") -> None:
        super().__init__(message)


class FilesystemError(DeliveryError):
    """Raised when the pickup directory cannot be written to."""

    def __init__(self, message: str = "Pickup directory is not writable") -> None:
        super().__init__(message)


class DeliveryCancelledError(DeliveryError):
    """Raised when a delivery attempt is cancelled before it completes."""

    def __init__(self, message: str = "Delivery cancelled") -> None:
        super().__init__(message)
