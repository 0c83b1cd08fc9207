"""
Leitura do corpo das requisições de motos.

O mesmo endpoint aceita multipart (arquivos em "images", cores como texto
JSON) ou JSON (imagens em base64 ou URLs). Aqui tudo é convertido em
MotorcycleData + ImageInput antes de chegar ao pipeline ou ao banco.
"""

import json
import logging
import math
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile
from fastapi import Request

from motocatalog.exceptions import ValidationError
from motocatalog.models.color import ColorIn
from motocatalog.models.image import ImageInput
from motocatalog.models.motorcycle import MotorcycleData

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


class Submission(BaseModel):
    data: MotorcycleData
    images: List[ImageInput] = []
    # None quando o cliente não mandou o campo (no update, mantém todas)
    existing_images: Optional[List[str]] = None


async def read_submission(request: Request, require_images: bool) -> Submission:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await _read_json(request)
        fields = _FieldReader(body, from_form=False)
        raw_images = body.get("images") or []
        if not isinstance(raw_images, list):
            raise ValidationError("Formato de imagens inválido")
        images = [_image_from_json(item) for item in raw_images]
    elif content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        fields = _FieldReader(form, from_form=True)
        images = [image for image in [await _image_from_form(item) for item in form.getlist("images")] if image]
    else:
        raise ValidationError("Formato de requisição não suportado")

    logger.debug(
        "Campos recebidos: name=%r price=%r imagens=%d",
        fields.text("name"), fields.raw("price"), len(images),
    )

    # Validações na mesma ordem do formulário de cadastro
    name = fields.text("name")
    if not name:
        raise ValidationError("Nome é obrigatório")

    description = fields.text("description")
    if not description:
        raise ValidationError("Descrição é obrigatória")

    price = parse_price(fields.raw("price"))
    existing_images = fields.string_list("existingImages")

    if require_images and not images:
        raise ValidationError("Pelo menos uma imagem é necessária")

    colors = parse_colors(fields.raw("colors"))

    try:
        data = MotorcycleData(
            name=name,
            description=description,
            price=price,
            is_sold=parse_bool(fields.raw("isSold")),
            colors=colors,
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(f"{first['loc'][0]}: {first['msg']}")

    return Submission(
        data=data,
        images=images,
        existing_images=existing_images,
    )


async def read_sold_flag(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await _read_json(request)
    elif content_type.startswith(FORM_CONTENT_TYPES):
        body = await request.form()
    else:
        raise ValidationError("Formato de requisição não suportado")

    value = body.get("isSold")
    if value is None:
        raise ValidationError("isSold é obrigatório")
    if not isinstance(value, (bool, str)):
        raise ValidationError("isSold deve ser true ou false")
    if isinstance(value, str) and value.strip().lower() not in ("true", "false"):
        raise ValidationError("isSold deve ser true ou false")
    return parse_bool(value)


def parse_price(value: Any) -> float:
    message = "Preço deve ser um número válido maior que zero"
    if value is None or isinstance(value, bool):
        raise ValidationError(message)
    try:
        price = float(str(value).strip().replace(",", ".")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if not math.isfinite(price):
        raise ValidationError(message)
    # Arredonda antes de comparar: 0.001 vira 0.00 no banco
    price = round(price, 2)
    if price <= 0:
        raise ValidationError(message)
    return price


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def parse_colors(value: Any) -> List[ColorIn]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError("Formato de cores inválido")

    if not isinstance(value, list) or not value:
        raise ValidationError("Pelo menos uma cor é necessária")

    try:
        return [ColorIn.model_validate(item) for item in value]
    except PydanticValidationError:
        raise ValidationError("Formato de cores inválido")


class _FieldReader:
    """Leitura uniforme de campos vindos de FormData ou de um dict JSON."""

    def __init__(self, source, from_form: bool):
        self.source = source
        self.from_form = from_form

    def raw(self, key: str):
        return self.source.get(key)

    def text(self, key: str) -> str:
        value = self.source.get(key)
        if not isinstance(value, str):
            return ""
        return value.strip()

    def string_list(self, key: str) -> Optional[List[str]]:
        if self.from_form:
            values = self.source.getlist(key)
            if not values:
                return None
            if not all(isinstance(v, str) for v in values):
                raise ValidationError("Formato de existingImages inválido")
            # Aceita tanto um campo JSON quanto o campo repetido
            if len(values) == 1 and values[0].strip().startswith("["):
                return _json_string_list(values[0])
            return [v for v in values if v]

        value = self.source.get(key)
        if value is None:
            return None
        if isinstance(value, str):
            return _json_string_list(value)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError("Formato de existingImages inválido")
        return value


def _json_string_list(value: str) -> List[str]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        raise ValidationError("Formato de existingImages inválido")
    if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
        raise ValidationError("Formato de existingImages inválido")
    return parsed


async def _read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("JSON inválido")
    if not isinstance(body, dict):
        raise ValidationError("JSON inválido")
    return body


def _image_from_json(item: Any) -> ImageInput:
    if isinstance(item, str):
        if item.startswith("data:"):
            return ImageInput.from_base64(item)
        return ImageInput.from_url(item)
    if isinstance(item, dict):
        if isinstance(item.get("url"), str):
            return ImageInput.from_url(item["url"])
        if isinstance(item.get("base64"), str):
            return ImageInput.from_base64(
                item["base64"], str(item.get("type") or ""), str(item.get("name") or "")
            )
    raise ValidationError("Formato de imagens inválido")


async def _image_from_form(item) -> Optional[ImageInput]:
    if isinstance(item, UploadFile):
        try:
            data = await item.read()
        finally:
            await item.close()
        # Campo de arquivo vazio enviado pelo navegador
        if not data and not item.filename:
            return None
        return ImageInput.from_bytes(data, item.content_type or "", item.filename or "")
    if isinstance(item, str) and item.strip():
        return _image_from_json(item.strip())
    return None
