"""Map a delivery mode to a concrete transport configuration.

Building a config never touches the network or the pickup directory.
The only lookup is the client-certificate search for the mutual-TLS mode,
and a missing certificate is carried forward as None so the failure
surfaces when the message is sent.
"""

from collections.abc import Callable
from pathlib import Path

import structlog

from smtp_verifier.config import Settings
from smtp_verifier.exceptions import CredentialError
from smtp_verifier.models import (
    CertificateQuery,
    ClientCertificate,
    Credentials,
    DeliveryMethod,
    DeliveryMode,
    TransportConfig,
)
from smtp_verifier.transport.certificates import find_certificate_by_query, store_scope_from_settings

logger = structlog.get_logger(__name__)

CertificateFinder = Callable[[CertificateQuery, str | None], ClientCertificate | None]


def _direct_network(settings: Settings) -> TransportConfig:
    password = settings.email_password.get_secret_value()
    if not settings.email_username or not password:
        raise CredentialError(
            "Direct-network delivery needs EMAIL_USERNAME and EMAIL_PASSWORD"
        )

    config = TransportConfig(
        host=settings.public_smtp_host,
        port=settings.public_smtp_port,
        delivery_method=DeliveryMethod.NETWORK,
        use_tls=True,
        mode=DeliveryMode.DIRECT_NETWORK,
        timeout=settings.smtp_timeout,
    )
    # Flag before value: enabling ambient credentials would clear explicit ones
    config = config.with_ambient_credentials(False)
    return config.with_credentials(
        Credentials(username=settings.email_username, password=settings.email_password)
    )


def _local_pickup(settings: Settings) -> TransportConfig:
    return TransportConfig(
        host="localhost",
        delivery_method=DeliveryMethod.PICKUP_DIRECTORY,
        pickup_directory=settings.pickup_directory,
        mode=DeliveryMode.LOCAL_PICKUP,
        timeout=settings.smtp_timeout,
    )


def _mutual_tls_network(settings: Settings, find_cert: CertificateFinder) -> TransportConfig:
    query = CertificateQuery(
        thumbprint=settings.client_cert_thumbprint,
        store=store_scope_from_settings(settings),
    )
    certificate = find_cert(query, settings.client_key_path)
    if certificate is None:
        logger.warning(
            "client_certificate_missing",
            thumbprint=query.thumbprint,
            store=query.store.name,
        )

    return TransportConfig(
        host=settings.private_smtp_host,
        port=settings.private_smtp_port,
        delivery_method=DeliveryMethod.NETWORK,
        use_tls=True,
        use_ambient_credentials=True,
        client_certificate=certificate,
        ca_file=Path(settings.private_ca_file) if settings.private_ca_file else None,
        mode=DeliveryMode.MUTUAL_TLS_NETWORK,
        timeout=settings.smtp_timeout,
    )


def build_config(
    mode: DeliveryMode | str,
    settings: Settings,
    find_cert: CertificateFinder | None = None,
) -> TransportConfig:
    """Build the transport configuration for a delivery mode.

    Args:
        mode: Delivery mode, or its string value.
        settings: Endpoints, secrets and trust-store location.
        find_cert: Certificate lookup used by the mutual-TLS mode.
            Defaults to searching the configured trust store.

    Returns:
        An immutable TransportConfig for the mode.

    Raises:
        ValueError: If mode is not a known delivery mode.
        CredentialError: If direct-network secrets are not set.
    """
    mode = DeliveryMode(mode)

    if mode == DeliveryMode.DIRECT_NETWORK:
        config = _direct_network(settings)
    elif mode == DeliveryMode.LOCAL_PICKUP:
        config = _local_pickup(settings)
    else:
        config = _mutual_tls_network(settings, find_cert or find_certificate_by_query)

    logger.debug("config_built", **config.describe())
    return config


def build_all(
    settings: Settings, find_cert: CertificateFinder | None = None
) -> dict[DeliveryMode, TransportConfig]:
    """Build configs for every mode whose prerequisites are present.

    Modes that cannot be configured (missing secrets) are left out.
    """
    configs = {}
    for mode in DeliveryMode:
        try:
            configs[mode] = build_config(mode, settings, find_cert)
        except CredentialError as e:
            logger.info("mode_skipped", mode=mode.value, reason=str(e))
    return configs
