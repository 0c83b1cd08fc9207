from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field

from motocatalog.models.color import ColorIn, ColorOut
from motocatalog.models.image import ImageOut


# ----------------------------------------------------
# 1. DADOS VALIDADOS DE UMA MOTO
# O que sobra do formulário depois da validação, pronto para o banco.
# ----------------------------------------------------
class MotorcycleData(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0, description="Preço de venda, sempre maior que zero.")
    is_sold: bool = False
    colors: List[ColorIn] = Field(..., min_length=1)


# ----------------------------------------------------
# 2. MODELO de saída: moto com imagens e cores
# ----------------------------------------------------
class MotorcycleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    description: str
    price: float
    is_sold: bool = Field(..., alias="isSold")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    images: List[ImageOut] = []
    colors: List[ColorOut] = []


class MotorcyclePage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    motorcycles: List[MotorcycleOut]
    total: int
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")
    page_size: int = Field(..., alias="pageSize")


class ImportSummary(BaseModel):
    imported: int
    skipped: int
