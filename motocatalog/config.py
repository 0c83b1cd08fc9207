from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configurações da aplicação, lidas do ambiente ou do arquivo .env."""

    # --- Banco de dados ---
    DATABASE_URL: str = Field(
        default="sqlite:///./motos.db",
        description="URL de conexão do SQLAlchemy"
    )

    # --- Imagens ---
    UPLOAD_DIR: str = Field(
        default="uploads",
        description="Diretório público servido em /uploads"
    )

    IMAGE_STORAGE: Literal["filesystem", "data_uri"] = Field(
        default="filesystem",
        description="Onde guardar a imagem processada: arquivo em disco ou data URI no banco"
    )

    IMAGE_OUTPUT_FORMAT: Literal["webp", "original"] = Field(
        default="webp",
        description="Converter sempre para WebP ou manter o formato detectado"
    )

    IMAGE_QUALITY: int = Field(default=80, ge=1, le=100)

    MAX_IMAGE_SIZE_MB: int = Field(default=5, ge=1, le=50)

    MAX_IMAGE_WIDTH: int = Field(default=1200, ge=1)

    MAX_IMAGE_HEIGHT: int = Field(default=800, ge=1)

    # --- API ---
    MAX_REQUEST_SIZE_MB: int = Field(
        default=50,
        ge=1,
        description="Tamanho máximo aceito no corpo das requisições /api"
    )

    PAGE_SIZE: int = Field(default=10, ge=1, le=100)

    DEBUG: bool = False

    API_HOST: str = "127.0.0.1"

    API_PORT: int = Field(default=8000, ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @property
    def max_image_size_bytes(self) -> int:
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024

    @property
    def max_request_size_bytes(self) -> int:
        return self.MAX_REQUEST_SIZE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
