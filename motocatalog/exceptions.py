import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Erro esperado da API; vira uma resposta {"error": message}."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST


class ImageProcessingError(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, index: int, reason: str):
        super().__init__(f"Imagem {index}: {reason}")
        self.index = index
        self.reason = reason


class MotorcycleNotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, motorcycle_id: int):
        super().__init__("Motocicleta não encontrada")
        self.motorcycle_id = motorcycle_id


# --- Handlers registrados no app ---

async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Requisição inválida")
    if field:
        message = f"{field}: {message}"
    logger.warning("%s %s -> 400: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Erro inesperado em %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Erro interno do servidor"},
    )
