import re
from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

# ----------------------------------------------------
# 1. MODELO de entrada: cor enviada pelo formulário
# ----------------------------------------------------
class ColorIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="Nome legível da cor.")
    hex: str = Field(..., description="Cor em hexadecimal, no formato #RRGGBB.")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("hex")
    @classmethod
    def check_hex(cls, value: str) -> str:
        if not HEX_PATTERN.match(value):
            raise ValueError(f"hex inválido: {value!r}")
        return value.upper()


# ----------------------------------------------------
# 2. MODELO de saída: cor gravada no banco
# ----------------------------------------------------
class ColorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    hex: str
    motorcycle_id: int = Field(..., alias="motorcycleId")


class PaletteColor(BaseModel):
    name: str
    hex: str
