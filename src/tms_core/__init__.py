"""
tms_core — session orchestration for TrackMyStartup.

Usage:
    from tms_core.context import AppContext
    from tms_core.auth.session import AuthEvent, AuthEventType, Session

    ctx = AppContext(provider)
    await ctx.handle_auth_event(AuthEvent(AuthEventType.SIGNED_IN, session))
    view = ctx.current_view()
"""

__version__ = "0.1.0"
