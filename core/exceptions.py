from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class ImageServiceError(Exception):
    """
    Error base del servicio de imágenes.

    Todas las condiciones de error que llegan al cliente heredan de esta clase
    y se serializan como {"error": ..., "details": ...}.
    """

    def __init__(self, message: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        result = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


# Errores de validación: se rechazan antes de tocar el almacenamiento

class UploadValidationError(ImageServiceError):
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, status_code=400, details=details)


class NoFilesProvidedError(UploadValidationError):
    def __init__(self):
        super().__init__("No files provided")


class LimitExceededError(UploadValidationError):
    """Se envían más archivos de los que admite el endpoint."""

    def __init__(self, max_files: int, received: int):
        super().__init__(
            f"You can upload at most {max_files} images",
            details=f"Received {received} files (max: {max_files})",
        )
        self.max_files = max_files


class InvalidFileTypeError(UploadValidationError):
    def __init__(self, filename: str, content_type: Optional[str]):
        super().__init__(
            f"{filename} is not a valid image",
            details=f"Declared type: {content_type or 'unknown'}",
        )
        self.filename = filename


class FileTooLargeError(UploadValidationError):
    def __init__(self, filename: str, size_bytes: int, max_mb: int):
        super().__init__(
            f"{filename} exceeds the {max_mb}MB limit",
            details=f"Size: {size_bytes / (1024 * 1024):.1f}MB",
        )
        self.filename = filename


# Errores de procesamiento y transporte

class InvalidImageError(ImageServiceError):
    """El buffer no se puede decodificar como imagen."""

    def __init__(self, filename: str, reason: Optional[str] = None):
        message = f"Invalid image: {filename}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, status_code=400)
        self.filename = filename


class UploadFailedError(ImageServiceError):
    """El PUT al almacenamiento de objetos no devolvió éxito."""

    def __init__(self, reason: str, filename: Optional[str] = None):
        message = f"Upload failed: {reason}"
        if filename:
            message = f"Upload failed for {filename}: {reason}"
        super().__init__(message, status_code=502)
        self.reason = reason
        self.filename = filename


class StorageError(ImageServiceError):
    def __init__(self, reason: str):
        super().__init__(f"Storage error: {reason}", status_code=500)


class ImageNotFoundError(ImageServiceError):
    def __init__(self, key: str):
        super().__init__("Image not found", status_code=404)
        self.key = key


class ImageUploadError(ImageServiceError):
    """Error agregado de un lote: details lleva el mensaje del error original."""

    def __init__(self, details: str):
        super().__init__("Failed to upload images", status_code=500, details=details)


async def image_service_exception_handler(request: Request, exc: ImageServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
