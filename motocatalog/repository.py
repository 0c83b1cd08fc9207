"""
Persistência das motos.

Cada operação de escrita roda numa única transação: commit no fim, rollback
e nova exceção em qualquer erro. Cores e imagens são sempre substituídas por
inteiro no update (apaga tudo e insere de novo), sem merge.
"""

import logging
import math
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from motocatalog.database_models import Color, Image, Motorcycle
from motocatalog.exceptions import MotorcycleNotFound
from motocatalog.models.motorcycle import MotorcycleData

logger = logging.getLogger(__name__)

# Faixa do INTEGER do SQLite; fora dela o driver estoura antes da consulta
MAX_ROW_ID = 2 ** 63 - 1


def _with_children(query):
    return query.options(selectinload(Motorcycle.images), selectinload(Motorcycle.colors))


def get_motorcycle(db: Session, motorcycle_id: int) -> Motorcycle:
    if not 1 <= motorcycle_id <= MAX_ROW_ID:
        raise MotorcycleNotFound(motorcycle_id)
    motorcycle = _with_children(db.query(Motorcycle)).filter(Motorcycle.id == motorcycle_id).first()
    if motorcycle is None:
        raise MotorcycleNotFound(motorcycle_id)
    return motorcycle


def list_motorcycles(db: Session, page: Optional[int] = None, page_size: int = 10):
    """Sem página devolve todas as motos; com página devolve (motos, total)."""
    query = _with_children(db.query(Motorcycle)).order_by(
        Motorcycle.created_at.desc(), Motorcycle.id.desc()
    )
    if page is None:
        return query.all()

    total = db.query(func.count(Motorcycle.id)).scalar()
    offset = (page - 1) * page_size
    if offset > MAX_ROW_ID:
        return [], total
    motorcycles = query.offset(offset).limit(page_size).all()
    return motorcycles, total


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size)


def create_motorcycle(db: Session, data: MotorcycleData, image_urls: List[str]) -> Motorcycle:
    try:
        motorcycle = Motorcycle(
            name=data.name,
            description=data.description,
            price=data.price,
            is_sold=data.is_sold,
            colors=_colors_for(data),
            images=_images_for(image_urls),
        )
        db.add(motorcycle)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Erro na transação de criação da moto %r", data.name)
        raise

    logger.info(
        "Moto %s criada com %d cores e %d imagens", motorcycle.id, len(data.colors), len(image_urls)
    )
    return get_motorcycle(db, motorcycle.id)


def update_motorcycle(
    db: Session, motorcycle_id: int, data: MotorcycleData, image_urls: List[str]
) -> Tuple[Motorcycle, List[str]]:
    """Atualiza os campos e substitui cores e imagens.

    Devolve a moto atualizada e as referências de imagem que deixaram de ser usadas.
    """
    try:
        motorcycle = get_motorcycle(db, motorcycle_id)
        previous_urls = [image.url for image in motorcycle.images]

        motorcycle.name = data.name
        motorcycle.description = data.description
        motorcycle.price = data.price
        motorcycle.is_sold = data.is_sold

        # delete-orphan apaga as linhas antigas ao trocar as coleções
        motorcycle.colors = _colors_for(data)
        motorcycle.images = _images_for(image_urls)
        db.commit()
    except MotorcycleNotFound:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Erro na transação de atualização da moto %s", motorcycle_id)
        raise

    kept = set(image_urls)
    removed_urls = [url for url in previous_urls if url not in kept]
    logger.info("Moto %s atualizada (%d imagens removidas)", motorcycle_id, len(removed_urls))
    return get_motorcycle(db, motorcycle_id), removed_urls


def set_sold(db: Session, motorcycle_id: int, is_sold: bool) -> Motorcycle:
    try:
        motorcycle = get_motorcycle(db, motorcycle_id)
        motorcycle.is_sold = is_sold
        db.commit()
    except MotorcycleNotFound:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Erro ao marcar moto %s como vendida=%s", motorcycle_id, is_sold)
        raise

    return get_motorcycle(db, motorcycle_id)


def delete_motorcycle(db: Session, motorcycle_id: int) -> List[str]:
    """Apaga a moto (cores e imagens vão em cascata) e devolve as URLs das imagens."""
    try:
        motorcycle = get_motorcycle(db, motorcycle_id)
        image_urls = [image.url for image in motorcycle.images]
        db.delete(motorcycle)
        db.commit()
    except MotorcycleNotFound:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Erro na transação de exclusão da moto %s", motorcycle_id)
        raise

    logger.info("Moto %s deletada", motorcycle_id)
    return image_urls


def import_motorcycles(db: Session, rows: Iterable[Tuple[MotorcycleData, List[str]]]) -> int:
    """Insere várias motos de uma vez, todas na mesma transação."""
    imported_count = 0
    try:
        for data, image_urls in rows:
            db.add(Motorcycle(
                name=data.name,
                description=data.description,
                price=data.price,
                is_sold=data.is_sold,
                colors=_colors_for(data),
                images=_images_for(image_urls),
            ))
            imported_count += 1
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Erro ao importar motos")
        raise
    return imported_count


def _colors_for(data: MotorcycleData) -> List[Color]:
    return [Color(name=c.name, hex=c.hex) for c in data.colors]


def _images_for(image_urls: List[str]) -> List[Image]:
    return [Image(url=url) for url in image_urls]


def orphaned_urls(db: Session, urls: Iterable[str]) -> List[str]:
    """Das URLs dadas, as que não são mais usadas por nenhuma imagem no banco."""
    urls = list(dict.fromkeys(urls))
    if not urls:
        return []
    still_used = {row.url for row in db.query(Image.url).filter(Image.url.in_(urls)).all()}
    return [url for url in urls if url not in still_used]
