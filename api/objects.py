from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
import json

from core.dependencies import get_durable_store, get_ephemeral_store
from core.exceptions import UploadValidationError
from domain.schemas.file_schema import NormalizeImagesResponse, UploadURLResponse
from infrastructure.blob_store import BlobStore, MemoryBlobStore
from api.api import CACHE_CONTROL

router = APIRouter()


@router.post("/api/objects/upload", response_model=UploadURLResponse)
async def get_upload_url(store: BlobStore = Depends(get_durable_store)):
    """URL prefirmada para que el cliente suba directamente al almacén"""
    ticket = await run_in_threadpool(store.create_write_ticket)
    return UploadURLResponse(uploadURL=ticket.url)


@router.put("/api/objects/memory/{key}", status_code=200)
async def put_memory_object(key: str, request: Request, store: MemoryBlobStore = Depends(get_ephemeral_store)):
    """Destino de las URLs de escritura cuando el almacén es la tabla en memoria"""
    data = await request.body()
    content_type = request.headers.get("Content-Type", "application/octet-stream")
    store.put(store.ticket_for(key), data, content_type)
    return {"success": True}


@router.put("/api/images", response_model=NormalizeImagesResponse)
async def normalize_images(request: Request, store: BlobStore = Depends(get_durable_store)):
    """Convierte las URLs de subida directa en referencias internas"""
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        payload = None

    image_urls = payload.get("imageURLs") if isinstance(payload, dict) else None
    if not isinstance(image_urls, list):
        raise UploadValidationError("imageURLs array is required")

    return NormalizeImagesResponse(objectPaths=[store.normalize_reference(str(url)) for url in image_urls])


@router.get("/objects/{object_path:path}")
async def get_object(object_path: str, store: BlobStore = Depends(get_durable_store)):
    image = await run_in_threadpool(store.get, store.key_for(object_path))
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )
