"""
API Middleware

Starlette integration: one transaction per HTTP request.
"""

from collections.abc import Callable, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from apmcore.core.types import RequestInfo
from apmcore.runtime.application import Application


class _StarletteResponseSink:
    """
    Exposes a Starlette response's headers to the transaction.

    Starlette sends the response itself once dispatch returns, so writes are
    no-ops here; only header observation is needed.
    """

    def __init__(self) -> None:
        self._response: Response | None = None

    def bind(self, response: Response) -> None:
        self._response = response

    @property
    def headers(self) -> Mapping[str, str]:
        if self._response is None:
            return {}
        return self._response.headers

    def write(self, data: bytes) -> int:
        return len(data)

    def write_header(self, code: int) -> None:
        return None


def request_info(request: Request) -> RequestInfo:
    return RequestInfo(
        method=request.method,
        url=str(request.url),
        headers=dict(request.headers),
    )


class InstrumentationMiddleware(BaseHTTPMiddleware):
    """
    Wraps each request in a transaction named by its path.

    The transaction is available to handlers as `request.state.transaction`.
    Unhandled exceptions are recorded as panic errors and re-raised.
    """

    def __init__(
        self,
        app: ASGIApp,
        application: Application,
        name_func: Callable[[Request], str] | None = None,
    ):
        super().__init__(app)
        self._application = application
        self._name_func = name_func or self._default_name

    @staticmethod
    def _default_name(request: Request) -> str:
        return request.url.path

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        sink = _StarletteResponseSink()
        txn = self._application.start_transaction(
            self._name_func(request),
            request=request_info(request),
            sink=sink,
        )
        request.state.transaction = txn

        with txn:
            response = await call_next(request)
            sink.bind(response)
            txn.write_header(response.status_code)

        return response
