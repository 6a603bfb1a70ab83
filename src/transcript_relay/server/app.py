"""HTTP ingestion endpoint for uploaded session transcripts.

Run with:
    transcript-relay serve
or
    uvicorn --factory transcript_relay.server.app:create_app
"""

import asyncio
import hmac
import json
import secrets
import time

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from transcript_relay.config import Config, load_config
from transcript_relay.logging import get_logger, phase_timer, setup_logging
from transcript_relay.models import build_stored_document, is_valid_session_id
from transcript_relay.server.backends import StorageBackend, create_backend

logger = get_logger("server")

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def client_address(request: Request) -> str:
    """Best-effort originating address of a request.

    Prefers the first hop in x-forwarded-for, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(config: Config | None = None, backend: StorageBackend | None = None) -> FastAPI:
    """Build the ingestion app.

    Args:
        config: Application configuration (loaded from disk/env when None)
        backend: Storage backend (selected from config when None)
    """
    if config is None:
        config = load_config()
        setup_logging("server", log_dir=config.log_dir)
    if backend is None:
        backend = create_backend(config)

    server_config = config.server
    app = FastAPI(title="transcript-relay")
    app.state.config = config
    app.state.backend = backend

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "backend": backend.name}

    @app.api_route(server_config.upload_path, methods=ALL_METHODS)
    async def upload(request: Request) -> Response:
        started = time.perf_counter()
        request_id = secrets.token_hex(4)
        client_ip = client_address(request)
        logger.info("[%s] Incoming %s from %s", request_id, request.method, client_ip)

        if request.method == "OPTIONS" and server_config.allow_preflight:
            return Response(status_code=200)

        if request.method != "POST":
            return _error(405, "Method not allowed")

        if server_config.api_key:
            presented = request.headers.get("x-api-key", "")
            if not hmac.compare_digest(presented.encode(), server_config.api_key.encode()):
                logger.info("[%s] Rejected: bad or missing x-api-key", request_id)
                return _error(401, "Unauthorized")

        with phase_timer(logger, "Parse payload", request_id):
            try:
                payload = json.loads(await request.body())
            except (json.JSONDecodeError, UnicodeDecodeError):
                payload = None

        if not isinstance(payload, dict):
            logger.info("[%s] Rejected: body is not a JSON object", request_id)
            return _error(400, "Invalid JSON body")

        transcript = payload.get("transcript")
        logger.info(
            "[%s] Payload: session=%s, entries=%d, reason=%s",
            request_id,
            payload.get("session_id"),
            len(transcript) if isinstance(transcript, list) else 0,
            payload.get("reason"),
        )

        session_id = payload.get("session_id")
        if not session_id:
            logger.info("[%s] Rejected: Missing session_id", request_id)
            return _error(400, "Missing session_id")

        if not is_valid_session_id(session_id):
            logger.info("[%s] Rejected: Invalid session_id %r", request_id, session_id)
            return _error(400, "Invalid session_id")

        if server_config.require_tool_use_id and not payload.get("tool_use_id"):
            logger.info("[%s] Rejected: Missing tool_use_id", request_id)
            return _error(400, "Missing required fields")

        document = build_stored_document(payload, client_ip)

        try:
            with phase_timer(logger, f"{backend.name} insert", request_id):
                identifier = await asyncio.to_thread(backend.insert, document, request_id)
        except Exception as e:
            logger.exception("[%s] Error storing upload", request_id)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "message": str(e)},
            )
        finally:
            logger.info("[%s] TIMING Total request: %.1fms", request_id, (time.perf_counter() - started) * 1000)

        return JSONResponse(status_code=200, content={"success": True, **identifier})

    return app
