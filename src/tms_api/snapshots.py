"""JSON views of an `AppContext` returned by the session and view endpoints."""

from __future__ import annotations

from typing import Any

from tms_core.context import AppContext

from tms_api.responses import to_jsonable


def session_snapshot(ctx: AppContext) -> dict[str, Any]:
    orchestrator = ctx.orchestrator
    loader = ctx.loader
    return {
        "state": orchestrator.state.value,
        "user": to_jsonable(orchestrator.user),
        "error": orchestrator.error,
        "is_processing": orchestrator.is_processing,
        "data": {
            "loaded": loader.has_initial_data_loaded,
            "error": loader.last_error.message if loader.last_error else None,
            "counts": loader.collections.counts(),
        },
        "advisor_branding": to_jsonable(loader.advisor_branding),
    }


def view_snapshot(ctx: AppContext) -> dict[str, Any]:
    view = ctx.view()
    nav = ctx.navigation
    return {
        "kind": view.kind.value,
        "role": view.role,
        "startup": to_jsonable(view.startup),
        "is_view_only": view.is_view_only,
        "view_mode": nav.view_mode,
        "current_tab": nav.current_tab,
    }
