import re
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

DATA_URI_PREFIX = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)


# ----------------------------------------------------
# 1. ORIGEM DA IMAGEM
# Cada requisição chega com um formato diferente (arquivo do multipart,
# base64 num JSON ou URL já hospedada). Tudo vira um ImageInput na borda.
# ----------------------------------------------------
class ImageSource(str, Enum):
    BYTES = "bytes"
    BASE64 = "base64"
    URL = "url"


class ImageInput(BaseModel):
    """Imagem recebida, ainda não validada nem processada."""

    model_config = ConfigDict(frozen=True)

    source: ImageSource
    filename: str = ""
    content_type: str = ""
    data: Optional[bytes] = None
    base64: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str, filename: str = "") -> "ImageInput":
        return cls(
            source=ImageSource.BYTES, data=data,
            content_type=content_type or "", filename=filename or "",
        )

    @classmethod
    def from_base64(cls, payload: str, content_type: str = "", filename: str = "") -> "ImageInput":
        """Aceita base64 puro ou um data URI completo (o prefixo é removido)."""
        match = DATA_URI_PREFIX.match(payload)
        if match:
            content_type = content_type or match.group(1)
            payload = payload[match.end():]
        return cls(
            source=ImageSource.BASE64, base64=payload,
            content_type=content_type or "", filename=filename or "",
        )

    @classmethod
    def from_url(cls, url: str) -> "ImageInput":
        return cls(source=ImageSource.URL, url=url.strip(), filename=url.strip())

    @property
    def label(self) -> str:
        return self.filename or self.source.value


# ----------------------------------------------------
# 2. RESULTADO DO PROCESSAMENTO
# ----------------------------------------------------
class ImageResult(BaseModel):
    success: bool
    url: Optional[str] = Field(None, description="Referência armazenável da imagem.")
    error: Optional[str] = None
    # Só verdadeiro quando o pipeline gravou um arquivo novo em disco
    stored_file: bool = False

    @classmethod
    def ok(cls, url: str, stored_file: bool = False) -> "ImageResult":
        return cls(success=True, url=url, stored_file=stored_file)

    @classmethod
    def fail(cls, error: str) -> "ImageResult":
        return cls(success=False, error=error)


# ----------------------------------------------------
# 3. MODELO de saída: imagem gravada no banco
# ----------------------------------------------------
class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    url: str
    motorcycle_id: int = Field(..., alias="motorcycleId")
