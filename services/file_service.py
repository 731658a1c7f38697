from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
import asyncio
import logging
from typing import List, Optional

from core.exceptions import (
    FileTooLargeError,
    ImageServiceError,
    ImageUploadError,
    LimitExceededError,
    NoFilesProvidedError,
    UploadFailedError,
)
from domain.enums.batch_policy import BatchPolicy
from domain.models import ProcessingProfile
from domain.schemas.file_schema import AcceptedFile, FileOutcome, ProcessedImage, RejectedFile, UploadItem
from infrastructure.blob_store import BlobStore
from services.image_processing_service import ImageProcessingService

logger = logging.getLogger(__name__)

class FileService:
    def __init__(self, store: BlobStore):
        self.store = store

    @staticmethod
    async def read_uploads(files: List[UploadFile]) -> List[UploadItem]:
        """Lee los archivos multipart a memoria y los cierra"""
        items = []
        for index, file in enumerate(files):
            try:
                data = await file.read()
                items.append(UploadItem(
                    filename=file.filename or f"image-{index + 1}",
                    content_type=file.content_type,
                    data=data,
                ))
            finally:
                await file.close()
        return items

    @staticmethod
    def validate_batch(items: List[UploadItem], max_files: int, max_size_bytes: Optional[int] = None) -> None:
        """Rechaza el lote completo antes de tocar el almacenamiento"""
        if not items:
            raise NoFilesProvidedError()
        if len(items) > max_files:
            raise LimitExceededError(max_files, len(items))
        if max_size_bytes is not None:
            for item in items:
                if item.size > max_size_bytes:
                    raise FileTooLargeError(item.filename, item.size, max_size_bytes // (1024 * 1024))

    async def upload_batch(
        self,
        items: List[UploadItem],
        profile: Optional[ProcessingProfile] = None,
        policy: BatchPolicy = BatchPolicy.ATOMIC,
    ) -> List[FileOutcome]:
        """
        Procesa (si hay perfil) y guarda un lote de archivos.

        Sin perfil los bytes se guardan tal cual. Con PER_FILE cada archivo
        produce su propio resultado y los ya guardados no se deshacen. Con
        ATOMIC cualquier fallo lanza ImageUploadError; los fallos de
        decodificación se detectan antes de escribir nada.
        """
        if not items:
            raise NoFilesProvidedError()

        if policy is BatchPolicy.PER_FILE:
            return [await self._upload_one(item, profile) for item in items]
        return await self._upload_all(items, profile)

    async def _upload_one(self, item: UploadItem, profile: Optional[ProcessingProfile]) -> FileOutcome:
        try:
            processed = await run_in_threadpool(self._transform, item, profile)
            reference = await run_in_threadpool(self._store, processed)
        except ImageServiceError as e:
            logger.warning(f"Archivo rechazado {item.filename}: {e.message}")
            return RejectedFile(filename=item.filename, reason=e.message)
        return AcceptedFile(filename=item.filename, reference=reference)

    async def _upload_all(self, items: List[UploadItem], profile: Optional[ProcessingProfile]) -> List[FileOutcome]:
        # Fase 1: decodificar y transformar todo el lote en paralelo
        transformed = await asyncio.gather(
            *(run_in_threadpool(self._transform, item, profile) for item in items),
            return_exceptions=True,
        )
        self._raise_first_error(transformed)

        # Fase 2: subir los buffers ya codificados
        references = await asyncio.gather(
            *(run_in_threadpool(self._store, processed) for processed in transformed),
            return_exceptions=True,
        )
        self._raise_first_error(references)

        return [
            AcceptedFile(filename=item.filename, reference=reference)
            for item, reference in zip(items, references)
        ]

    @staticmethod
    def _raise_first_error(results: list) -> None:
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Lote de imágenes fallido: {result}")
                raise ImageUploadError(str(result)) from result

    @staticmethod
    def _transform(item: UploadItem, profile: Optional[ProcessingProfile]) -> ProcessedImage:
        if profile is None:
            return ProcessedImage(
                filename=item.filename,
                data=item.data,
                content_type=item.content_type or "application/octet-stream",
            )
        return ImageProcessingService.process_image(item.data, profile, item.filename)

    def _store(self, processed: ProcessedImage) -> str:
        ticket = self.store.create_write_ticket()
        try:
            self.store.put(ticket, processed.data, processed.content_type)
        except UploadFailedError as e:
            raise UploadFailedError(e.reason, filename=processed.filename) from e
        return self.store.normalize_reference(ticket.url)
