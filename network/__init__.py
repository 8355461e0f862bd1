"""
Network identity control (Tor exit rotation).
"""

from .tor import TorConfig, TorIdentityProvider, TorUnreachable

__all__ = [
    "TorConfig",
    "TorIdentityProvider",
    "TorUnreachable",
]
