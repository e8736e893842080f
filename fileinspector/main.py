import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fileinspector.api.middleware.logging import RequestLoggingMiddleware
from fileinspector.api.routes.scan import router as scan_router
from fileinspector.config import get_settings

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="FileInspector API",
    description="File integrity and trust validation service",
    version="1.0.0",
    docs_url="/v1/docs",
    openapi_url="/v1/openapi.json",
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(scan_router)


@app.get("/healthz", tags=["health"])
async def health_check() -> JSONResponse:
    return JSONResponse({"status": "ok"})
