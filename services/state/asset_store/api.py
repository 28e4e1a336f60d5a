"""FastAPI adapter serving asset files by raw FileID."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response, StreamingResponse

from packages.asset_shared.config import AssetSettings
from packages.asset_shared.errors import exception_to_error
from packages.asset_shared.http import create_app, run_app
from packages.asset_shared.logging import fields, get_logger, log_context
from services.state.asset_store.config import (
    HttpIngressSettings,
    resolve_asset_store_settings,
)
from services.state.asset_store.domain import AssetResponse
from services.state.asset_store.grants import grant_session
from services.state.asset_store.service import AssetStore

_LOGGER = get_logger(__name__)


def register_routes(
    *, router: APIRouter, service: AssetStore, settings: HttpIngressSettings
) -> None:
    """Register the asset file route under the configured URL prefix."""

    def serve_asset(file_id: str, request: Request) -> Response:
        session_id = request.cookies.get(settings.session_cookie) or None
        with log_context({fields.FILE_ID: file_id, fields.SESSION_ID: session_id}):
            try:
                with grant_session(session_id):
                    result = service.get_response_for(file_id=file_id)
            except Exception as exc:
                error = exception_to_error(exc)
                _LOGGER.exception("Asset request failed: %s", error.code)
                return Response(status_code=500)
        return _to_http_response(result)

    router.add_api_route(
        f"{settings.url_prefix}/{{file_id:path}}",
        serve_asset,
        methods=["GET"],
        name="serve_asset",
    )


def create_asset_app(*, service: AssetStore, settings: HttpIngressSettings) -> FastAPI:
    """Build a FastAPI app exposing one asset store."""
    app = create_app(title="Asset Store")
    router = APIRouter()
    register_routes(router=router, service=service, settings=settings)
    app.include_router(router)
    return app


def serve(*, settings: AssetSettings, service: AssetStore) -> None:
    """Run the asset HTTP surface with uvicorn until interrupted."""
    ingress = resolve_asset_store_settings(settings).http
    app = create_asset_app(service=service, settings=ingress)
    run_app(
        app,
        host=ingress.host,
        port=ingress.port,
        log_level=settings.logging.level.lower(),
    )


def _to_http_response(result: AssetResponse) -> Response:
    if isinstance(result.body, (bytes, type(None))):
        return Response(
            content=result.body or b"",
            status_code=result.status_code,
            headers=result.headers,
        )
    headers = dict(result.headers)
    media_type = headers.pop("Content-Type", None)
    return StreamingResponse(
        result.body,
        status_code=result.status_code,
        headers=headers,
        media_type=media_type,
    )
