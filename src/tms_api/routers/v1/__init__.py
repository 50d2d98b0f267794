from fastapi import APIRouter

from tms_api.routers.v1 import (
    compliance,
    entry,
    offers,
    requests,
    session,
    startups,
    view,
)

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(entry.router)
v1_router.include_router(session.router)
v1_router.include_router(view.router)
v1_router.include_router(offers.router)
v1_router.include_router(requests.router)
v1_router.include_router(startups.router)
v1_router.include_router(compliance.router)
