from typing import Dict, List

from fastapi import APIRouter

from motocatalog.models.color import PaletteColor

router = APIRouter(prefix="/api/colors", tags=["colors"])

# Paleta oferecida no formulário de cadastro
AVAILABLE_COLORS = [
    PaletteColor(name="Vermelho", hex="#FF0000"),
    PaletteColor(name="Azul", hex="#0000FF"),
    PaletteColor(name="Preto", hex="#000000"),
    PaletteColor(name="Branco", hex="#FFFFFF"),
    PaletteColor(name="Prata", hex="#C0C0C0"),
    PaletteColor(name="Cinza", hex="#808080"),
    PaletteColor(name="Verde", hex="#008000"),
    PaletteColor(name="Amarelo", hex="#FFFF00"),
    PaletteColor(name="Laranja", hex="#FFA500"),
    PaletteColor(name="Marrom", hex="#8B4513"),
    PaletteColor(name="Roxo", hex="#800080"),
]


@router.get("", name="list_colors", response_model=Dict[str, List[PaletteColor]])
def list_colors():
    return {"colors": AVAILABLE_COLORS}
