"""
Last-resort error middleware.

Pure ASGI (not BaseHTTPMiddleware) so async generator dependencies such as
get_db_session() still see the exception and roll back.
"""
import json

from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from storefront.core.errors import AppError
from storefront.core.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR = {"error": {"code": "internal_error", "message": "Unexpected server error"}}


class ErrorHandlerMiddleware:
    """
    Turns exceptions that escaped the app into the standard error envelope.

    AppError keeps its status and code. Anything else becomes a 500 with a
    fixed message; the details only go to the log.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException:
            raise
        except Exception as e:
            path = scope.get("path", "unknown")
            if response_started:
                logger.exception("Unhandled exception after response started", path=path)
                raise

            if isinstance(e, AppError):
                status_code, body = e.status_code, e.to_dict()
                logger.warning("Application error outside routing", code=e.code, path=path)
            else:
                status_code, body = 500, INTERNAL_ERROR
                logger.exception("Unhandled exception", error_type=type(e).__name__, path=path)

            await self._send_json(send, status_code, body)

    @staticmethod
    async def _send_json(send: Send, status_code: int, body: dict) -> None:
        payload = json.dumps(body).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": status_code,
            "headers": [
                [b"content-type", b"application/json"],
                [b"content-length", str(len(payload)).encode()],
            ],
        })
        await send({
            "type": "http.response.body",
            "body": payload,
        })
