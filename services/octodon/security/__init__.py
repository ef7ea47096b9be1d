"""
Security package for the Octodon service.

Provides signing of the client-carried OAuth bridge state and encryption of
wrapped authorization codes.
"""

from .encryption import TokenEncryption, decrypt, encrypt
from .state import BridgeState, sign_state, verify_state

__all__ = [
    "BridgeState",
    "TokenEncryption",
    "decrypt",
    "encrypt",
    "sign_state",
    "verify_state",
]
