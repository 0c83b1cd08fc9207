import base64
import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
MOTORCYCLE_SUBDIR = "motorcycles"

# Formato do Pillow -> (extensão, MIME)
FORMAT_INFO = {
    "WEBP": ("webp", "image/webp"),
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
}


class ImageStorage:
    """Guarda imagens já processadas e devolve a referência armazenável.

    mode="filesystem" grava em <upload_dir>/motorcycles e devolve /uploads/...;
    mode="data_uri" devolve a imagem inteira embutida em base64.
    """

    def __init__(self, upload_dir, mode: str = "filesystem"):
        self.upload_dir = Path(upload_dir)
        self.mode = mode
        self.target_dir = self.upload_dir / MOTORCYCLE_SUBDIR

    @property
    def writes_files(self) -> bool:
        return self.mode == "filesystem"

    def ensure_dirs(self):
        self.target_dir.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, image_format: str) -> str:
        extension, mime = FORMAT_INFO[image_format]
        if self.mode == "data_uri":
            return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"

        self.ensure_dirs()
        safe_filename = f"{uuid.uuid4().hex}.{extension}"
        file_path = self.target_dir / safe_filename
        with file_path.open("wb") as buffer:
            buffer.write(data)
        logger.debug("Imagem gravada em %s (%d bytes)", file_path, len(data))
        return f"{UPLOAD_URL_PREFIX}{MOTORCYCLE_SUBDIR}/{safe_filename}"

    def path_for(self, url: str) -> Optional[Path]:
        """Caminho em disco de uma referência /uploads/..., ou None para URLs remotas e data URIs."""
        if not url or not url.startswith(UPLOAD_URL_PREFIX):
            return None
        root = self.upload_dir.resolve()
        candidate = (root / url[len(UPLOAD_URL_PREFIX):]).resolve()
        if root not in candidate.parents:
            return None
        return candidate

    def is_stored_reference(self, url: str) -> bool:
        path = self.path_for(url)
        return path is not None and path.is_file()

    def remove(self, urls: Iterable[str]) -> int:
        """Apaga os arquivos das referências locais. Falhas são só registradas."""
        removed = 0
        for url in urls:
            file_path = self.path_for(url)
            if file_path is None:
                continue
            try:
                file_path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Erro ao deletar arquivo %s: %s", file_path, e)
        return removed
