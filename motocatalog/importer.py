"""
Importação de motos a partir de planilha Excel (.xlsx).

Colunas, a partir da segunda linha (a primeira é o cabeçalho):
    A: nome  B: descrição  C: preço  D: vendida (sim/não)
    E: cores no formato "Vermelho:#FF0000;Preto:#000000"
    F: URLs das imagens separadas por ";"
"""

import io
import logging
import zipfile
from typing import List, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError as PydanticValidationError

from motocatalog.exceptions import ValidationError
from motocatalog.models.color import ColorIn
from motocatalog.models.motorcycle import MotorcycleData

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = (".xlsx",)
TRUE_VALUES = ("sim", "s", "true", "1", "vendida", "yes")


def parse_workbook(content: bytes) -> Tuple[List[Tuple[MotorcycleData, List[str]]], int]:
    """Lê a planilha e devolve (linhas válidas, quantidade de linhas ignoradas)."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        logger.warning("Planilha ilegível: %s", e)
        raise ValidationError("Arquivo de planilha inválido")

    rows = []
    skipped = 0
    try:
        sheet = workbook.active
        for line_number, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
            if not row or all(cell is None for cell in row):
                continue
            parsed = parse_row(row)
            if parsed is None:
                logger.info("Linha %d ignorada na importação", line_number)
                skipped += 1
                continue
            rows.append(parsed)
    finally:
        workbook.close()

    return rows, skipped


def parse_row(row) -> Tuple[MotorcycleData, List[str]]:
    cells = list(row) + [None] * (6 - len(row))
    name, description, price, sold, colors_cell, images_cell = cells[:6]

    image_urls = [
        url.strip() for url in str(images_cell or "").split(";")
        if url.strip().lower().startswith(("http://", "https://"))
    ]
    if not image_urls:
        return None

    try:
        data = MotorcycleData(
            name=str(name or "").strip(),
            description=str(description or "").strip(),
            price=float(price) if price is not None else 0,
            is_sold=str(sold or "").strip().lower() in TRUE_VALUES,
            colors=parse_color_cell(colors_cell),
        )
    except (PydanticValidationError, TypeError, ValueError):
        return None
    return data, image_urls


def parse_color_cell(value) -> List[ColorIn]:
    colors = []
    for chunk in str(value or "").split(";"):
        if not chunk.strip():
            continue
        name, _, hex_value = chunk.partition(":")
        colors.append(ColorIn(name=name, hex=hex_value.strip()))
    return colors
