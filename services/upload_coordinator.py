import logging
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel

from core.exceptions import (
    FileTooLargeError,
    ImageServiceError,
    InvalidFileTypeError,
    LimitExceededError,
    UploadValidationError,
)
from domain.schemas.file_schema import RejectedFile, UploadItem
from infrastructure.image_api_client import ImageApiClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

class Notification(BaseModel):
    title: str
    description: str
    variant: str = "default"  # default | destructive

class SelectionResult(BaseModel):
    accepted: List[UploadItem] = []
    rejected: List[RejectedFile] = []
    references: List[str] = []

def log_notification(notification: Notification) -> None:
    level = logging.WARNING if notification.variant == "destructive" else logging.INFO
    logger.log(level, f"{notification.title}: {notification.description}")

class UploadCoordinator:
    """
    Lado cliente de la subida de imágenes de un anuncio.

    Filtra los archivos antes de usar la red, envía los válidos en una sola
    petición multipart y mantiene la lista ordenada de referencias del
    formulario. Mientras hay una subida en curso no se aceptan nuevas
    selecciones.
    """

    def __init__(
        self,
        api_client: ImageApiClient,
        max_count: int = 8,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        notify: Callable[[Notification], None] = log_notification,
        on_change: Optional[Callable[[List[str]], None]] = None,
        references: Optional[List[str]] = None,
    ):
        self.api_client = api_client
        self.max_count = max_count
        self.max_file_size = max_file_size
        self.notify = notify
        self.on_change = on_change
        self._references: List[str] = list(references or [])
        self._uploading = False

    @property
    def references(self) -> Tuple[str, ...]:
        return tuple(self._references)

    @property
    def is_uploading(self) -> bool:
        return self._uploading

    def validate_files(self, files: List[UploadItem]) -> SelectionResult:
        """Comprueba cupo, tipo y tamaño; el cupo aborta el lote, el resto es por archivo"""
        if len(self._references) + len(files) > self.max_count:
            self.notify(Notification(
                title="Too many images",
                description=f"You can add at most {self.max_count} images",
                variant="destructive",
            ))
            raise LimitExceededError(self.max_count, len(self._references) + len(files))

        result = SelectionResult()
        for file in files:
            try:
                if not (file.content_type or "").startswith("image/"):
                    raise InvalidFileTypeError(file.filename, file.content_type)
                if file.size > self.max_file_size:
                    raise FileTooLargeError(file.filename, file.size, self.max_file_size // (1024 * 1024))
            except UploadValidationError as e:
                self.notify(Notification(title="Invalid file", description=e.message, variant="destructive"))
                result.rejected.append(RejectedFile(filename=file.filename, reason=e.message))
                continue
            result.accepted.append(file)
        return result

    def select_files(self, files: List[UploadItem]) -> SelectionResult:
        if self._uploading:
            raise UploadValidationError("An upload is already in progress")
        if not files:
            return SelectionResult()

        result = self.validate_files(files)
        if result.accepted:
            result.references = self.submit_batch(result.accepted)
        return result

    def submit_batch(self, valid_files: List[UploadItem]) -> List[str]:
        """Una sola petición; el estado solo cambia si la respuesta es correcta"""
        self._uploading = True
        try:
            new_references = self.api_client.upload(valid_files)
        except ImageServiceError as e:
            logger.error(f"Subida fallida: {e.message}")
            self.notify(Notification(
                title="Upload error",
                description="The images could not be uploaded. Please try again.",
                variant="destructive",
            ))
            return []
        finally:
            self._uploading = False

        self._references.extend(new_references)
        self._changed()
        self.notify(Notification(
            title="Upload complete",
            description=f"{len(new_references)} image(s) uploaded successfully",
        ))
        return new_references

    def remove_at(self, index: int) -> str:
        """Quita una referencia de la lista; la imagen guardada no se borra"""
        if index < 0 or index >= len(self._references):
            raise IndexError(f"No image at position {index}")
        removed = self._references.pop(index)
        self._changed()
        return removed

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(list(self._references))
