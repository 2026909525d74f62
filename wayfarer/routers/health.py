from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    settings = request.app.state.settings
    return {"status": "ok", "app": settings.app_name, "debug": settings.debug}


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request):
    settings = request.app.state.settings
    # In dev/debug mode, expose metrics without auth
    if not settings.debug:
        token = request.headers.get("X-Metrics-Token")
        if not settings.metrics_token or token != settings.metrics_token:
            return JSONResponse(
                status_code=403,
                content={"error": {"code": "forbidden", "message": "Forbidden"}},
            )
    data = generate_latest()
    return PlainTextResponse(content=data, media_type=CONTENT_TYPE_LATEST)
