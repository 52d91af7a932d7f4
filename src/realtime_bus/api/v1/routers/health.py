from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from realtime_bus.api.v1.routers.ws import get_manager

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    errors: list[str] = []

    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
        except Exception as exc:  # noqa: BLE001
            errors.append(f"redis: {exc}")

    connections = len(get_manager())
    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors, "connections": connections},
        )
    return JSONResponse(content={
        "status": "ready",
        "fanout": "redis" if redis is not None else "disabled",
        "connections": connections,
    })
