import logging
from functools import lru_cache

from fastapi import Depends

from core.config import settings
from infrastructure.blob_store import BlobStore, MemoryBlobStore, SpacesBlobStore
from infrastructure.digitalocean_client import DigitalOceanClient
from services.file_service import FileService

logger = logging.getLogger(__name__)


@lru_cache
def get_ephemeral_store() -> MemoryBlobStore:
    """Tabla en memoria compartida por todo el proceso (subidas simples)."""
    return MemoryBlobStore(ttl_seconds=settings.UPLOAD_URL_TTL_SEC)


@lru_cache
def get_durable_store() -> BlobStore:
    """Almacén del camino procesado, elegido al arrancar según STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "spaces":
        logger.info(f"Almacén duradero: DO Spaces ({settings.DO_SPACES_BUCKET})")
        return SpacesBlobStore(
            DigitalOceanClient(),
            private_dir=settings.OBJECT_PRIVATE_DIR,
            ttl_seconds=settings.UPLOAD_URL_TTL_SEC,
        )
    if settings.STORAGE_BACKEND != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
    logger.info("Almacén duradero: memoria (los datos se pierden al reiniciar)")
    return get_ephemeral_store()


def get_simple_file_service(store: BlobStore = Depends(get_ephemeral_store)) -> FileService:
    return FileService(store)


def get_enhanced_file_service(store: BlobStore = Depends(get_durable_store)) -> FileService:
    return FileService(store)
