import logging
from typing import List, Optional

import requests

from core.exceptions import UploadFailedError
from domain.schemas.file_schema import UploadItem

logger = logging.getLogger(__name__)

SIMPLE_UPLOAD_PATH = "/api/images/upload-simple"
ENHANCED_UPLOAD_PATH = "/api/images/upload"

class ImageApiClient:
    """Cliente HTTP de los endpoints de subida (campo multipart `images`)"""

    def __init__(self, base_url: str, upload_path: str = SIMPLE_UPLOAD_PATH, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.upload_path = upload_path
        self.timeout = timeout
        self.session = session or requests.Session()

    def upload(self, files: List[UploadItem]) -> List[str]:
        """Envía todos los archivos en una sola petición y devuelve las referencias en orden"""
        multipart = [
            ("images", (f.filename, f.data, f.content_type or "application/octet-stream"))
            for f in files
        ]
        url = f"{self.base_url}{self.upload_path}"

        try:
            response = self.session.post(url, files=multipart, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error de conexión con {url}: {str(e)}")
            raise UploadFailedError("connection error with the image API")

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            reason = body.get("details") or body.get("error") or response.text
            logger.error(f"Error en la subida: {response.status_code} - {reason}")
            raise UploadFailedError(f"server responded {response.status_code}: {reason}")

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or not isinstance(body.get("imageUrls"), list):
            logger.error(f"Respuesta inesperada de {url}: {response.text}")
            raise UploadFailedError("invalid response from the image API")
        return list(body["imageUrls"])
