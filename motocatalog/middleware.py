import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


class ApiGuardMiddleware(BaseHTTPMiddleware):
    """Limita o tamanho das requisições /api e adiciona headers de segurança."""

    def __init__(self, app, max_body_size: int, prefix: str = "/api/"):
        super().__init__(app)
        self.max_body_size = max_body_size
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.prefix):
            return await call_next(request)

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            logger.warning(
                "Payload recusado em %s: %s bytes (máximo %d)",
                request.url.path, content_length, self.max_body_size,
            )
            response = JSONResponse(
                {"error": "Payload muito grande"},
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
        else:
            response = await call_next(request)

        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response
