"""
HTTP surface for the voting sync engine.

One endpoint dispatches on method and the `action` query parameter:
GET runs a sync or read action, POST ingests a vote_cast webhook, OPTIONS
answers CORS preflight, and anything else is rejected with 405.
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from ..chain import ChainProvider
from ..config import Config, load_config
from ..errors import ValidationError
from ..runtime import VotingSyncApp
from ..sync import normalize_evermark_id

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

VALID_ACTIONS = [
    "sync-evermark",
    "sync-cycle",
    "sync-recent",
    "stats",
    "get-current-cycle",
    "get-user-votes",
    "refresh-stale",
]

ROUTE_PATHS = ("/", "/voting-sync")
ROUTE_METHODS = ["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE"]


def _json(status_code: int, payload: dict) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=CORS_HEADERS)


def _int_param(request: Request, name: str, default: int | None = None) -> int | None:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer") from e
    if value < 0:
        raise ValidationError(f"{name} must not be negative")
    return value


def create_app(
    config: Config | None = None,
    provider: ChainProvider | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    Args:
        config: Service config; loaded from the default path at startup if omitted
        provider: Chain provider override, otherwise JSON-RPC from config
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = VotingSyncApp(config or load_config(), provider=provider)
        await service.start()
        app.state.service = service
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(
        title="Evermark Voting Sync",
        description="Reconciles voting contract state into the voting cache",
        lifespan=lifespan,
    )

    async def voting_sync(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        try:
            if request.method == "GET":
                return await _handle_get(request, request.app.state.service)
            if request.method == "POST":
                return await _handle_post(request, request.app.state.service)
            return _json(405, {"error": "Method not allowed"})
        except ValidationError as e:
            logger.info(f"Rejected {request.method} {request.url.path}: {e}")
            return _json(400, {"error": str(e)})
        except Exception as e:
            logger.error(f"Voting sync error: {e}", exc_info=True)
            return _json(500, {"error": "Internal server error", "message": str(e)})

    # Methods the route does not list are rejected by the router before
    # voting_sync runs; answer them with the same body and CORS headers.
    @app.exception_handler(405)
    async def method_not_allowed(request: Request, exc: Exception) -> Response:
        return _json(405, {"error": "Method not allowed"})

    for path in ROUTE_PATHS:
        app.add_api_route(path, voting_sync, methods=ROUTE_METHODS)

    return app


async def _handle_get(request: Request, service: VotingSyncApp) -> Response:
    action = request.query_params.get("action")
    orchestrator = service.orchestrator

    if action == "sync-evermark":
        evermark_id = request.query_params.get("evermark_id")
        if not evermark_id:
            return _json(400, {"error": "evermark_id required"})
        evermark_id = normalize_evermark_id(evermark_id)
        cycle = _int_param(request, "cycle")

        await orchestrator.sync_evermark_voting_data(evermark_id, cycle)
        return _json(
            200,
            {"success": True, "message": f"Synced voting data for evermark {evermark_id}"},
        )

    if action == "sync-cycle":
        cycle = _int_param(request, "cycle")
        if cycle is None:
            cycle = await service.reader.get_current_cycle()
            if cycle is None:
                return _json(400, {"error": "No active cycle found"})

        cycle_result = await orchestrator.sync_voting_cycle_data(cycle)
        tallies = await orchestrator.sync_cycle_tallies(cycle)
        return _json(
            200,
            {
                "success": True,
                "message": f"Synced cycle {cycle} data",
                "cycleSynced": cycle_result is not None,
                "evermarksSynced": tallies.processed,
            },
        )

    if action == "sync-recent":
        blocks = _int_param(request, "blocks", service.config.sync.default_block_range)

        result = await orchestrator.sync_recent_voting_events(blocks)
        return _json(
            200,
            {
                "success": True,
                "message": f"Synced recent voting events ({blocks} blocks)",
                "result": asdict(result) if result else None,
            },
        )

    if action == "stats":
        stats = await service.reporter.get_cache_stats()
        return _json(200, stats.to_dict())

    if action == "get-current-cycle":
        cycle = await service.reader.get_current_cycle()
        if cycle is None:
            return _json(
                500,
                {
                    "error": "Failed to read current cycle",
                    "details": "Voting contract read failed",
                },
            )
        return _json(200, {"currentCycle": cycle, "message": f"Current cycle: {cycle}"})

    if action == "get-user-votes":
        user_address = request.query_params.get("user_address")
        if not user_address:
            return _json(400, {"error": "user_address required"})

        votes = await service.repository.get_user_votes(user_address)
        return _json(
            200,
            {
                "success": True,
                "votes": [
                    {**asdict(v), "updated_at": v.updated_at.isoformat()} for v in votes
                ],
                "count": len(votes),
            },
        )

    if action == "refresh-stale":
        max_age = _int_param(
            request, "max_age_minutes", service.config.sync.stale_after_minutes
        )
        limit = _int_param(request, "limit", service.config.sync.stale_batch_limit)

        result = await orchestrator.refresh_stale_tallies(max_age_minutes=max_age, limit=limit)
        return _json(
            200,
            {"success": True, "message": "Scheduled sync completed", **asdict(result)},
        )

    return _json(400, {"error": "Invalid action", "available_actions": VALID_ACTIONS})


async def _handle_post(request: Request, service: VotingSyncApp) -> Response:
    raw = await request.body()
    try:
        payload = json.loads(raw or b"{}")
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e

    tally = await service.orchestrator.ingest_vote_cast_webhook(payload)
    return _json(
        200,
        {
            "success": True,
            "message": "Vote cached successfully",
            "tally": asdict(tally) if tally else None,
        },
    )
