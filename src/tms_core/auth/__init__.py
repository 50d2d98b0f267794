"""Auth orchestration: session events in, one authenticated user out."""

from tms_core.auth.orchestrator import AuthOrchestrator, AuthState
from tms_core.auth.session import (
    AuthEvent,
    AuthEventType,
    AuthProvider,
    Session,
    SupabaseAuthProvider,
)

__all__ = [
    "AuthEvent",
    "AuthEventType",
    "AuthOrchestrator",
    "AuthProvider",
    "AuthState",
    "Session",
    "SupabaseAuthProvider",
]
