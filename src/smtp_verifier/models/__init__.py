from smtp_verifier.models.certificate import (
    CertificateQuery,
    ClientCertificate,
    StoreScope,
    normalize_thumbprint,
)
from smtp_verifier.models.message import build_probe_message
from smtp_verifier.models.outcome import DeliveryOutcome, FailureKind
from smtp_verifier.models.transport import (
    Credentials,
    DeliveryMethod,
    DeliveryMode,
    TransportConfig,
)

__all__ = [
    "CertificateQuery",
    "ClientCertificate",
    "Credentials",
    "DeliveryMethod",
    "DeliveryMode",
    "DeliveryOutcome",
    "FailureKind",
    "StoreScope",
    "TransportConfig",
    "build_probe_message",
    "normalize_thumbprint",
]
