"""Per-request logging context: request id, account id and an access log line."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

_ACCOUNTS_PREFIX = "/api/v1/accounts/"


def _account_id_from_path(path: str) -> str | None:
    """Pull the account id out of /api/v1/accounts/{id}/... paths."""
    if not path.startswith(_ACCOUNTS_PREFIX):
        return None
    account_id = path[len(_ACCOUNTS_PREFIX):].split("/", 1)[0]
    if not account_id or account_id == "register":
        return None
    return account_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request-scoped fields to structlog and echo X-Request-Id."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        account_id = _account_id_from_path(request.url.path)
        if account_id:
            structlog.contextvars.bind_contextvars(account_id=account_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
