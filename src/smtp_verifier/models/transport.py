"""Transport configuration models.

A TransportConfig is built once per delivery mode and handed to the
verifier unchanged. Fields that the mutable mail clients set through
order-sensitive property assignment are fixed at construction here, and
the two credential sources are switched through explicit copy methods.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import SecretStr

from smtp_verifier.exceptions import ConfigurationError

if TYPE_CHECKING:
    from smtp_verifier.models.certificate import ClientCertificate


class DeliveryMode(str, Enum):
    """Named delivery mode selected by the caller."""

    DIRECT_NETWORK = "direct-network"
    LOCAL_PICKUP = "local-pickup"
    MUTUAL_TLS_NETWORK = "mutual-tls-network"


class DeliveryMethod(str, Enum):
    """How the transport hands the message off."""

    NETWORK = "network"
    PICKUP_DIRECTORY = "pickup-directory"


@dataclass(frozen=True)
class Credentials:
    """Explicit username/password pair for SMTP AUTH."""

    username: str
    password: SecretStr = field(repr=False)

    def __post_init__(self) -> None:
        if not self.username:
            raise ConfigurationError("Credentials require a username")


@dataclass(frozen=True)
class TransportConfig:
    """Fully resolved connection parameters for one delivery attempt.

    Attributes:
        host: SMTP server hostname. Ignored for pickup-directory delivery.
        port: SMTP server port, or None for the transport default.
        delivery_method: Network submission or pickup-directory drop.
        use_tls: Upgrade the connection with STARTTLS.
        credentials: Explicit login, mutually exclusive with ambient credentials.
        use_ambient_credentials: Authenticate as the current process identity
            instead of with explicit credentials. No SMTP AUTH is issued.
        client_certificate: Certificate presented during the TLS handshake.
            May be None in mutual-TLS mode when the lookup found nothing.
        pickup_directory: Target directory for pickup-directory delivery.
            Strings are converted to Path; empty values and "." are rejected.
        ca_file: Extra CA bundle for verifying the server certificate.
        mode: The delivery mode this config was built for.
        timeout: Transport timeout in seconds.
    """

    host: str = "localhost"
    port: int | None = None
    delivery_method: DeliveryMethod = DeliveryMethod.NETWORK
    use_tls: bool = False
    credentials: Credentials | None = None
    use_ambient_credentials: bool = False
    client_certificate: "ClientCertificate | None" = None
    pickup_directory: Path | str | None = None
    ca_file: Path | None = None
    mode: DeliveryMode | None = None
    timeout: float = 30

    def __post_init__(self) -> None:
        if self.credentials is not None and self.use_ambient_credentials:
            raise ConfigurationError(
                "Explicit credentials and ambient credentials are mutually exclusive"
            )

        if self.pickup_directory is not None:
            # Path("") silently becomes Path("."), so check the raw value first
            raw = str(self.pickup_directory).strip()
            if raw in ("", "."):
                raise ConfigurationError(
                    f"Pickup directory must be a non-empty path, got {self.pickup_directory!r}"
                )
            object.__setattr__(self, "pickup_directory", Path(self.pickup_directory))

        if self.delivery_method == DeliveryMethod.PICKUP_DIRECTORY:
            if self.pickup_directory is None:
                raise ConfigurationError("Pickup-directory delivery requires a directory path")
        else:
            if not self.host:
                raise ConfigurationError("Network delivery requires a host")
            if self.port is not None and not 1 <= self.port <= 65535:
                raise ConfigurationError(f"Port out of range: {self.port}")

        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive: {self.timeout}")

    @property
    def is_pickup(self) -> bool:
        return self.delivery_method == DeliveryMethod.PICKUP_DIRECTORY

    @property
    def requires_client_certificate(self) -> bool:
        """True when the mode authenticates with a client certificate."""
        return self.mode == DeliveryMode.MUTUAL_TLS_NETWORK

    def with_credentials(self, credentials: Credentials) -> "TransportConfig":
        """Return a copy using explicit credentials.

        Assigning explicit credentials turns ambient credentials off.
        """
        return dataclasses.replace(
            self, credentials=credentials, use_ambient_credentials=False
        )

    def with_ambient_credentials(self, enabled: bool = True) -> "TransportConfig":
        """Return a copy with the ambient-credentials flag set.

        Enabling the flag clears any explicit credentials, so the flag
        applied last overrides earlier credentials. Disabling it leaves
        existing credentials untouched.
        """
        if enabled:
            return dataclasses.replace(self, credentials=None, use_ambient_credentials=True)
        return dataclasses.replace(self, use_ambient_credentials=False)

    def describe(self) -> dict[str, object]:
        """Loggable view of the config with secrets masked."""
        return {
            "mode": self.mode.value if self.mode else None,
            "delivery_method": self.delivery_method.value,
            "host": None if self.is_pickup else self.host,
            "port": None if self.is_pickup else self.port,
            "use_tls": None if self.is_pickup else self.use_tls,
            "username": self.credentials.username if self.credentials else None,
            "password": "********" if self.credentials else None,
            "use_ambient_credentials": self.use_ambient_credentials,
            "client_certificate": (
                self.client_certificate.thumbprint if self.client_certificate else None
            ),
            "pickup_directory": str(self.pickup_directory) if self.pickup_directory else None,
        }
