"""API routes for running scans and inspecting installed plugin bundles.

Endpoints
---------
POST /v1/scan
    Scan a directory under ``settings.scan_root`` with the configuration
    built from application settings and return the :class:`ScanResponse`.
    Paths are resolved (symlinks included) before the check; anything that
    lands outside the root is refused with ``403``.  Relative paths are taken
    relative to the root.  With no root configured every request is refused.

GET  /v1/plugins
    List optional validator bundles that loaded and the extensions any known
    bundle claims.

The :class:`~fileinspector.core.inspector.Inspector` is built once per
process by :func:`get_inspector`; override that dependency (and
:func:`~fileinspector.config.get_settings`) in tests.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from fileinspector.config import Settings, get_settings
from fileinspector.core.inspector import Inspector
from fileinspector.core.scan_config import ScanConfig
from fileinspector.schemas.scan import PluginsResponse, ScanRequest, ScanResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["scan"])

# Steps hold per-scan state, so scans through the shared inspector are serialised.
_scan_lock = asyncio.Lock()


@functools.lru_cache(maxsize=1)
def get_inspector() -> Inspector:
    settings = get_settings()
    return Inspector(ScanConfig.from_settings(settings), settings=settings)


def resolve_scan_path(requested: str, scan_root: Path | None) -> Path:
    """Resolve *requested* against *scan_root* and refuse anything outside it.

    Raises:
        HTTPException: ``403`` when no root is configured, when the path
            cannot be resolved, or when it resolves outside the root.
    """
    if scan_root is None:
        logger.warning("Scan request refused: SCAN_ROOT is not configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Scanning over the API is disabled: no scan root is configured",
        )

    try:
        root = scan_root.resolve()
        candidate = (root / requested).resolve()
    except (OSError, RuntimeError, ValueError) as exc:
        logger.warning("Scan request refused: %r could not be resolved (%s)", requested, exc)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Scan path could not be resolved",
        ) from exc

    if not candidate.is_relative_to(root):
        logger.warning("Scan request refused: %s is outside %s", candidate, root)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Scan path is outside the configured scan root",
        )
    return candidate


@router.post("/scan", response_model=ScanResponse)
async def scan(
    body: ScanRequest,
    request: Request,
    inspector: Annotated[Inspector, Depends(get_inspector)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ScanResponse:
    path = resolve_scan_path(body.path, settings.scan_root)

    async with _scan_lock:
        result = await asyncio.to_thread(inspector.scan, path)

    # Picked up by the request logging middleware.
    request.state.scan_id = result.scan_id
    request.state.scan_response = result.response_name
    return ScanResponse.from_result(result)


@router.get("/plugins", response_model=PluginsResponse)
async def plugins(
    inspector: Annotated[Inspector, Depends(get_inspector)],
) -> PluginsResponse:
    return PluginsResponse(
        loaded_libraries=inspector.loaded_libraries(),
        supported_formats=inspector.supported_formats(),
    )
