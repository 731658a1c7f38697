from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from typing import List
import logging

from core.config import settings
from core.dependencies import (
    get_durable_store,
    get_enhanced_file_service,
    get_ephemeral_store,
    get_simple_file_service,
)
from core.exceptions import ImageNotFoundError, ImageUploadError, UploadValidationError
from domain.enums.batch_policy import BatchPolicy
from domain.models import PROFILES
from domain.schemas.file_schema import AcceptedFile, RejectedFile, UploadResponse
from infrastructure.blob_store import BlobStore
from services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_CONTROL = "public, max-age=3600"


@router.post("/api/images/upload-simple", response_model=UploadResponse)
async def upload_images_simple(
    images: List[UploadFile] = File([], description="Imágenes a guardar tal cual"),
    file_service: FileService = Depends(get_simple_file_service),
):
    """
    Guarda las imágenes sin procesarlas en la tabla en memoria.

    Cada archivo es independiente: si uno falla, los ya guardados se conservan
    y el fallo aparece en `rejected`.
    """
    items = await FileService.read_uploads(images)
    FileService.validate_batch(items, settings.SIMPLE_MAX_FILES, settings.max_file_size_bytes)

    outcomes = await file_service.upload_batch(items, policy=BatchPolicy.PER_FILE)
    accepted = [o.reference for o in outcomes if isinstance(o, AcceptedFile)]
    rejected = [o for o in outcomes if isinstance(o, RejectedFile)]

    if not accepted:
        raise ImageUploadError(rejected[0].reason)

    return UploadResponse(
        success=True,
        imageUrls=accepted,
        message=f"{len(accepted)} image(s) uploaded successfully",
        rejected=rejected,
    )


@router.post("/api/images/upload", response_model=UploadResponse)
async def upload_images(
    images: List[UploadFile] = File([], description="Imágenes a validar, redimensionar y recodificar"),
    profile: str = Query("marketplace", description="Perfil de procesamiento: marketplace | standardized"),
    file_service: FileService = Depends(get_enhanced_file_service),
):
    """
    Valida, redimensiona y recodifica cada imagen según el perfil y la sube
    al almacén duradero.

    - **marketplace**: caja de 1200x800 sin ampliar, conserva el formato
    - **standardized**: recorte exacto 800x600 sobre fondo blanco, JPEG

    El lote es atómico: si una imagen no es válida no se guarda ninguna.
    """
    selected_profile = PROFILES.get(profile)
    if selected_profile is None:
        raise UploadValidationError(
            f"Unknown profile: {profile}",
            details=f"Available profiles: {', '.join(PROFILES)}",
        )

    items = await FileService.read_uploads(images)
    FileService.validate_batch(items, settings.ENHANCED_MAX_FILES, settings.max_file_size_bytes)

    outcomes = await file_service.upload_batch(items, profile=selected_profile, policy=BatchPolicy.ATOMIC)
    references = [o.reference for o in outcomes]

    return UploadResponse(
        success=True,
        imageUrls=references,
        message=f"{len(references)} image(s) processed and uploaded successfully",
    )


@router.get("/api/images/{image_id}")
async def get_image(
    image_id: str,
    ephemeral: BlobStore = Depends(get_ephemeral_store),
    durable: BlobStore = Depends(get_durable_store),
):
    """Devuelve la imagen de la tabla en memoria o, si no está, del almacén duradero"""
    try:
        image = ephemeral.get(image_id)
    except ImageNotFoundError:
        if durable is ephemeral:
            raise
        image = await run_in_threadpool(durable.get, durable.key_for(image_id))

    return Response(
        content=image.content,
        media_type=image.content_type or "image/jpeg",
        headers={"Cache-Control": CACHE_CONTROL},
    )
