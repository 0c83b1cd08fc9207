"""
Pipeline de imagens das motos.

Etapas, nesta ordem:
1. Tipo MIME declarado na lista permitida (JPEG, PNG, WebP)
2. Tamanho decodificado dentro do limite
3. Decodificação com Pillow para garantir que a imagem é válida
4. Redimensionamento para caber na caixa máxima, sem ampliar
5. Recodificação em WebP (ou no formato original)
6. Armazenamento em disco ou como data URI

URLs já hospedadas passam direto, sem nenhuma dessas etapas.
"""

import asyncio
import base64
import binascii
import io
import logging
from typing import List, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from motocatalog.config import Settings
from motocatalog.exceptions import ImageProcessingError
from motocatalog.image_storage import ImageStorage
from motocatalog.models.image import ImageInput, ImageResult, ImageSource

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = ("image/jpeg", "image/png", "image/webp")
MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}
# Formatos que o Pillow pode detectar e que aceitamos manter
SUPPORTED_FORMATS = ("JPEG", "PNG", "WEBP")


class ImageProcessor:

    def __init__(self, settings: Settings, storage: ImageStorage):
        self.storage = storage
        self.max_size = settings.max_image_size_bytes
        self.max_size_mb = settings.MAX_IMAGE_SIZE_MB
        self.max_box = (settings.MAX_IMAGE_WIDTH, settings.MAX_IMAGE_HEIGHT)
        self.output_format = settings.IMAGE_OUTPUT_FORMAT
        self.quality = settings.IMAGE_QUALITY

    def process(self, image_input: ImageInput) -> ImageResult:
        """Valida e processa uma imagem. Nunca levanta exceção para entrada ruim."""
        if image_input.source == ImageSource.URL:
            return self._pass_through(image_input.url)

        logger.info("Validando imagem %s (%s)", image_input.label, image_input.content_type)
        try:
            content_type = normalize_content_type(image_input.content_type)
            if content_type not in ALLOWED_FILE_TYPES:
                logger.warning("Tipo de arquivo não permitido: %r", image_input.content_type)
                return ImageResult.fail("Tipo de arquivo não permitido. Use JPEG, PNG ou WebP")

            if image_input.source == ImageSource.BASE64:
                try:
                    data = base64.b64decode("".join(image_input.base64.split()), validate=True)
                except (binascii.Error, ValueError):
                    return ImageResult.fail("Conteúdo base64 inválido")
            else:
                data = image_input.data or b""

            if not data:
                return ImageResult.fail("Arquivo de imagem vazio")

            if len(data) > self.max_size:
                logger.warning(
                    "Imagem muito grande: %.2fMB (máximo %dMB)",
                    len(data) / (1024 * 1024), self.max_size_mb,
                )
                return ImageResult.fail(f"Imagem muito grande (máximo {self.max_size_mb}MB)")

            try:
                image, detected_format = self._decode(data)
            except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as e:
                logger.warning("Imagem ilegível %s: %s", image_input.label, e)
                return ImageResult.fail("Imagem corrompida ou em formato inválido")

            if detected_format not in SUPPORTED_FORMATS:
                return ImageResult.fail("Tipo de arquivo não permitido. Use JPEG, PNG ou WebP")

            original_size = image.size
            image = self._resize(image)
            target_format = "WEBP" if self.output_format == "webp" else detected_format
            encoded = self._encode(image, target_format)
            logger.debug(
                "Imagem %s: %s %s -> %s %s (%d bytes)",
                image_input.label, detected_format, original_size, target_format, image.size, len(encoded),
            )

            url = self.storage.save(encoded, target_format)
            return ImageResult.ok(url, stored_file=self.storage.writes_files)
        except Exception as e:
            logger.exception("Erro ao processar imagem %s", image_input.label)
            return ImageResult.fail(f"Erro ao processar imagem: {e}")

    async def process_batch(self, inputs: Sequence[ImageInput]) -> List[ImageResult]:
        """Processa todas as imagens em paralelo e só depois junta os resultados.

        Se alguma falhar, os arquivos já gravados pelas outras são apagados e
        ImageProcessingError aponta a primeira imagem com problema.
        """
        results = await asyncio.gather(*(run_in_threadpool(self.process, item) for item in inputs))

        for index, result in enumerate(results, start=1):
            if not result.success:
                self.discard(results)
                raise ImageProcessingError(index, result.error)
        return list(results)

    def discard(self, results: Sequence[ImageResult]) -> int:
        """Apaga os arquivos gravados por este lote (usado quando a submissão é abortada)."""
        return self.storage.remove(r.url for r in results if r.success and r.stored_file)

    def _pass_through(self, url: str) -> ImageResult:
        if url and url.lower().startswith(("http://", "https://")):
            return ImageResult.ok(url)
        if self.storage.is_stored_reference(url):
            return ImageResult.ok(url)
        return ImageResult.fail("URL de imagem inválida")

    def _decode(self, data: bytes):
        # verify() invalida o objeto, então a imagem é aberta de novo para uso
        with Image.open(io.BytesIO(data)) as probe:
            probe.verify()
        image = Image.open(io.BytesIO(data))
        detected_format = image.format
        image.load()
        image = ImageOps.exif_transpose(image)
        return image, detected_format

    def _resize(self, image: Image.Image) -> Image.Image:
        if image.width <= self.max_box[0] and image.height <= self.max_box[1]:
            return image
        resized = image.copy()
        resized.thumbnail(self.max_box, Image.Resampling.LANCZOS)
        return resized

    def _encode(self, image: Image.Image, image_format: str) -> bytes:
        has_alpha = image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info
        options = {}
        if image_format == "WEBP":
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if has_alpha else "RGB")
            options["quality"] = self.quality
        elif image_format == "JPEG":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            options.update(quality=self.quality, optimize=True)
        else:
            options["optimize"] = True

        buffer = io.BytesIO()
        image.save(buffer, format=image_format, **options)
        return buffer.getvalue()


def normalize_content_type(content_type: str) -> str:
    value = (content_type or "").split(";")[0].strip().lower()
    return MIME_ALIASES.get(value, value)
