"""OS trust store probes and installers."""

from trust_assistant.trust.base import TrustManager
from trust_assistant.trust.factory import (
    check_certificate_installed,
    get_trust_manager,
    install_certificate,
)

__all__ = [
    "TrustManager",
    "check_certificate_installed",
    "get_trust_manager",
    "install_certificate",
]
