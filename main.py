import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

# --- Importações da aplicação ---
from motocatalog.config import Settings, get_settings
from motocatalog.database import Database
from motocatalog.exceptions import (
    CatalogError,
    catalog_exception_handler,
    request_validation_handler,
    unexpected_exception_handler,
)
from motocatalog.image_processing import ImageProcessor
from motocatalog.image_storage import ImageStorage
from motocatalog.middleware import ApiGuardMiddleware
# ---------------------------------

# --- Importação dos Roteadores ---
from motocatalog.routers.motorcycles import router as motorcycles_router
from motocatalog.routers.colors import router as colors_router
# ---------------------------------

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = app.state.database
    database.create_all()
    logger.info("Catálogo de motos iniciado (armazenamento de imagens: %s)", app.state.settings.IMAGE_STORAGE)
    yield
    database.dispose()


def create_app(settings: Settings = None) -> FastAPI:
    """Monta a aplicação com as dependências explícitas (banco, storage, pipeline)."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Catálogo de Motos", lifespan=lifespan)

    storage = ImageStorage(settings.UPLOAD_DIR, mode=settings.IMAGE_STORAGE)
    storage.ensure_dirs()

    app.state.settings = settings
    app.state.database = Database(settings.DATABASE_URL)
    app.state.image_storage = storage
    app.state.image_processor = ImageProcessor(settings, storage)

    app.add_middleware(ApiGuardMiddleware, max_body_size=settings.max_request_size_bytes)

    app.add_exception_handler(CatalogError, catalog_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    # Imagens gravadas em disco ficam públicas em /uploads
    app.mount("/uploads", StaticFiles(directory=storage.upload_dir), name="uploads")

    # Inclui os roteadores (ordem não importa)
    app.include_router(motorcycles_router)
    app.include_router(colors_router)

    @app.get("/status")
    def status(request: Request):
        return {
            "status": "ok",
            "host": request.client.host if request.client else None,
            "port": request.url.port or 80,
            "scheme": request.url.scheme,
            "path": request.url.path,
        }

    return app


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.API_HOST, port=settings.API_PORT)
