"""
Authentication Module - Black Box Interface

Purpose: Decide whether a request may reach its handler
Interface: AuthFactory.build(), AuthenticationGate.authenticate()
Hidden: Token algorithms, credential locations, challenge provider protocol

This module can be completely replaced with any other auth implementation
without affecting other modules.
"""

from .factory import AuthFactory
from .gate import AuthenticationGate
from .interfaces import ChallengeResult, GateDecision
from .token_verifier import TokenVerifier, VerificationError

__all__ = [
    "AuthFactory",
    "AuthenticationGate",
    "ChallengeResult",
    "GateDecision",
    "TokenVerifier",
    "VerificationError",
]
