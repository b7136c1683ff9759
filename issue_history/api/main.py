from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from connectors.github import GitHubIssuesConnector
from metrics.compute_issue_history import history_to_payload
from metrics.job_history import run_issue_history_job
from metrics.job_snapshot import run_issue_snapshot_job
from settings import Settings
from storage import DuplicateDayError, create_store

from .models.schemas import (
    DayResponse,
    DayTotalsResponse,
    HistoryRequest,
    MessageResponse,
    SnapshotRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": MessageResponse, "description": "Day already stored"},
    401: {"model": MessageResponse, "description": "Secret mismatch"},
    500: {"model": MessageResponse, "description": "Internal server error"},
}


def _default_store_factory(settings: Settings):
    return create_store(settings.db_url)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _failure_response(exc: Exception) -> JSONResponse:
    """Map a failure to an HTTP response. Call from the except block handling it."""
    if isinstance(exc, DuplicateDayError):
        logger.warning(f"Rejected duplicate day: {exc}")
        return _message(400, "Already exists")
    logger.exception("Request failed")
    return _message(500, "Internal server error")


def _day_response(day) -> DayResponse:
    return DayResponse(
        date=day.date,
        total_opened=day.total_opened,
        total_closed=day.total_closed,
    )


async def _read_body(request: Request) -> Dict[str, Any]:
    """Return the JSON object body, or an empty dict when absent or unreadable."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _request_body(model) -> Dict[str, Any]:
    return {
        "requestBody": {
            "content": {"application/json": {"schema": model.model_json_schema()}}
        }
    }


def _authorized(settings: Settings, body: Dict[str, Any]) -> bool:
    secret = body.get("secret")
    return isinstance(secret, str) and settings.check_secret(secret)


# Bodies are validated only after the secret check, so an unauthorized caller
# always gets 401 and never a schema error.
@router.post(
    "/api/history",
    response_model=Dict[str, DayTotalsResponse],
    responses=ERROR_RESPONSES,
    openapi_extra=_request_body(HistoryRequest),
)
async def history(request: Request) -> JSONResponse:
    settings: Settings = request.app.state.settings
    body = await _read_body(request)
    if not _authorized(settings, body):
        return _message(401, "Unauthorized")

    try:
        payload = HistoryRequest.model_validate(body)
        connector = request.app.state.connector_factory(settings)
        try:
            job_kwargs = dict(
                connector=connector,
                owner=payload.owner,
                repo=payload.repo,
                max_pages=payload.page_limit or None,
                skip_save=payload.skip_save,
            )
            if payload.skip_save:
                result = await run_issue_history_job(store=None, **job_kwargs)
            else:
                async with request.app.state.store_factory(settings) as store:
                    result = await run_issue_history_job(store=store, **job_kwargs)
        finally:
            connector.close()
    except Exception as exc:
        return _failure_response(exc)

    return JSONResponse(content=history_to_payload(result))


@router.post(
    "/api/populate",
    response_model=DayResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=_request_body(SnapshotRequest),
)
async def populate(request: Request) -> DayResponse | JSONResponse:
    settings: Settings = request.app.state.settings
    body = await _read_body(request)
    if not _authorized(settings, body):
        return _message(401, "Unauthorized")

    try:
        payload = SnapshotRequest.model_validate(body)
        connector = request.app.state.connector_factory(settings)
        try:
            async with request.app.state.store_factory(settings) as store:
                day = await run_issue_snapshot_job(
                    connector=connector,
                    store=store,
                    owner=payload.owner,
                    repo=payload.repo,
                )
        finally:
            connector.close()
    except Exception as exc:
        return _failure_response(exc)

    return _day_response(day)


@router.get(
    "/api/days",
    response_model=List[DayResponse],
    responses={500: ERROR_RESPONSES[500]},
)
async def days(
    request: Request,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[DayResponse] | JSONResponse:
    try:
        settings: Settings = request.app.state.settings
        async with request.app.state.store_factory(settings) as store:
            rows = await store.list_days(start=start, end=end)
    except Exception as exc:
        return _failure_response(exc)
    return [_day_response(row) for row in rows]


def create_app(
    settings: Optional[Settings] = None,
    connector_factory: Optional[Callable[[Settings], object]] = None,
    store_factory: Optional[Callable[[Settings], object]] = None,
) -> FastAPI:
    """
    Build the API application.

    :param settings: Configuration; read from the environment when omitted.
    :param connector_factory: Builds a GitHub connector from settings.
    :param store_factory: Builds an async-context-manager store from settings.
    """
    app = FastAPI(
        title="Issue History API",
        version="1.0.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings or Settings.from_env()
    app.state.connector_factory = (
        connector_factory or GitHubIssuesConnector.from_settings
    )
    app.state.store_factory = store_factory or _default_store_factory
    app.include_router(router)
    return app


app = create_app()
