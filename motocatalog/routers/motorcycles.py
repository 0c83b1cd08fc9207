import logging
from pathlib import Path
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.orm import Session
from starlette import status
from starlette.concurrency import run_in_threadpool

# --- BANCO DE DADOS E SERVIÇOS ---
from motocatalog.database import get_db
from motocatalog import repository
from motocatalog.config import Settings
from motocatalog.dependencies import get_app_settings, get_image_processor, get_image_storage
from motocatalog.exceptions import CatalogError, MotorcycleNotFound, ValidationError
from motocatalog.image_processing import ImageProcessor
from motocatalog.image_storage import ImageStorage
from motocatalog.importer import SPREADSHEET_EXTENSIONS, parse_workbook
from motocatalog.models.motorcycle import ImportSummary, MotorcycleOut, MotorcyclePage
from motocatalog.payloads import read_sold_flag, read_submission
# ---------------------------------

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/motorcycles", tags=["motorcycles"])


# --- LEITURA ---

@router.get("", name="list_motorcycles", response_model=Union[MotorcyclePage, List[MotorcycleOut]])
def list_motorcycles(
    page: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    try:
        if page is None:
            motorcycles = repository.list_motorcycles(db)
            return [MotorcycleOut.model_validate(m) for m in motorcycles]

        motorcycles, total = repository.list_motorcycles(db, page=page, page_size=settings.PAGE_SIZE)
        return MotorcyclePage(
            motorcycles=[MotorcycleOut.model_validate(m) for m in motorcycles],
            total=total,
            total_pages=repository.total_pages(total, settings.PAGE_SIZE),
            current_page=page,
            page_size=settings.PAGE_SIZE,
        )
    except Exception:
        logger.exception("Erro ao buscar motos")
        raise CatalogError("Erro ao buscar motos")


@router.get("/{motorcycle_id}", name="show_motorcycle", response_model=MotorcycleOut)
def show_motorcycle(motorcycle_id: int, db: Session = Depends(get_db)):
    return MotorcycleOut.model_validate(repository.get_motorcycle(db, motorcycle_id))


# --- CRIAÇÃO ---

@router.post(
    "", name="create_motorcycle", response_model=MotorcycleOut, status_code=status.HTTP_201_CREATED
)
async def create_motorcycle(
    request: Request,
    db: Session = Depends(get_db),
    processor: ImageProcessor = Depends(get_image_processor),
):
    submission = await read_submission(request, require_images=True)
    logger.info(
        "Criando moto %r com %d imagens e %d cores",
        submission.data.name, len(submission.images), len(submission.data.colors),
    )

    # Nenhuma escrita no banco acontece se alguma imagem falhar
    results = await processor.process_batch(submission.images)

    try:
        motorcycle = await run_in_threadpool(
            repository.create_motorcycle, db, submission.data, [r.url for r in results]
        )
    except Exception:
        processor.discard(results)
        logger.exception("Erro ao criar motocicleta")
        raise CatalogError("Erro ao criar motocicleta")

    return MotorcycleOut.model_validate(motorcycle)


# --- ATUALIZAÇÃO ---

@router.put("/{motorcycle_id}", name="update_motorcycle", response_model=MotorcycleOut)
async def update_motorcycle(
    motorcycle_id: int,
    request: Request,
    db: Session = Depends(get_db),
    processor: ImageProcessor = Depends(get_image_processor),
    storage: ImageStorage = Depends(get_image_storage),
):
    submission = await read_submission(request, require_images=False)

    current = await run_in_threadpool(repository.get_motorcycle, db, motorcycle_id)
    current_urls = [image.url for image in current.images]
    if submission.existing_images is None:
        kept_urls = current_urls
    else:
        unknown = [url for url in submission.existing_images if url not in current_urls]
        if unknown:
            raise ValidationError("Imagem existente não pertence a esta motocicleta")
        kept_urls = list(dict.fromkeys(submission.existing_images))

    if not kept_urls and not submission.images:
        raise ValidationError("Pelo menos uma imagem é necessária")

    results = await processor.process_batch(submission.images)

    try:
        motorcycle, removed_urls = await run_in_threadpool(
            repository.update_motorcycle,
            db, motorcycle_id, submission.data, kept_urls + [r.url for r in results],
        )
    except MotorcycleNotFound:
        processor.discard(results)
        raise
    except Exception:
        processor.discard(results)
        logger.exception("Erro ao atualizar motocicleta %s", motorcycle_id)
        raise CatalogError("Erro ao atualizar motocicleta")

    # Arquivos das imagens removidas saem depois do commit
    response = MotorcycleOut.model_validate(motorcycle)
    orphaned = await run_in_threadpool(repository.orphaned_urls, db, removed_urls)
    storage.remove(orphaned)
    return response


@router.patch("/{motorcycle_id}", name="mark_motorcycle_sold", response_model=MotorcycleOut)
async def mark_motorcycle_sold(motorcycle_id: int, request: Request, db: Session = Depends(get_db)):
    is_sold = await read_sold_flag(request)
    try:
        motorcycle = await run_in_threadpool(repository.set_sold, db, motorcycle_id, is_sold)
    except MotorcycleNotFound:
        raise
    except Exception:
        logger.exception("Erro ao atualizar motocicleta %s", motorcycle_id)
        raise CatalogError("Erro ao atualizar motocicleta")

    return MotorcycleOut.model_validate(motorcycle)


# --- EXCLUSÃO ---

@router.delete("/{motorcycle_id}", name="delete_motorcycle")
def delete_motorcycle(
    motorcycle_id: int,
    db: Session = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage),
):
    try:
        image_urls = repository.delete_motorcycle(db, motorcycle_id)
    except MotorcycleNotFound:
        raise
    except Exception:
        logger.exception("Erro ao deletar motocicleta %s", motorcycle_id)
        raise CatalogError("Erro ao deletar motocicleta")

    # Falha ao apagar arquivo não desfaz a exclusão: o banco é a fonte da verdade
    storage.remove(repository.orphaned_urls(db, image_urls))
    return {"success": True}


# --- IMPORTAÇÃO DE PLANILHA ---

@router.post("/import", name="import_motorcycles", response_model=ImportSummary)
async def import_motorcycles(
    excel_file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    if Path(excel_file.filename or "").suffix.lower() not in SPREADSHEET_EXTENSIONS:
        raise ValidationError("Arquivo inválido. Envie uma planilha .xlsx")

    try:
        content = await excel_file.read()
    finally:
        await excel_file.close()

    rows, skipped = parse_workbook(content)
    try:
        imported = await run_in_threadpool(repository.import_motorcycles, db, rows)
    except Exception:
        logger.exception("Erro no processamento da planilha %s", excel_file.filename)
        raise CatalogError("Erro no processamento do arquivo")

    logger.info("Importação de %s: %d motos, %d linhas ignoradas", excel_file.filename, imported, skipped)
    return ImportSummary(imported=imported, skipped=skipped)
