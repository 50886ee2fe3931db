"""Transport layer for smtp-verifier.

This module provides the three pieces of a delivery check:
- build_config: Map a delivery mode to a TransportConfig
- find_certificate: Look up a client certificate by thumbprint
- DeliveryVerifier: Send a message and report a DeliveryOutcome
"""

from smtp_verifier.transport.certificates import TrustStore, find_certificate
from smtp_verifier.transport.selector import build_all, build_config
from smtp_verifier.transport.verifier import DeliveryVerifier, send, send_async

__all__ = [
    "DeliveryVerifier",
    "TrustStore",
    "build_all",
    "build_config",
    "find_certificate",
    "send",
    "send_async",
]
