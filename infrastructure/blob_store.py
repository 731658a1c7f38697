"""
Almacenes de imágenes intercambiables.

El procesador solo conoce el contrato BlobStore:
create_write_ticket() -> WriteTicket, put(ticket, bytes), get(key) -> StoredImage.
"""
import datetime
import logging
import uuid
from abc import ABC, abstractmethod
from urllib.parse import urlparse

from core.exceptions import ImageNotFoundError, UploadFailedError
from domain.schemas.file_schema import StoredImage, WriteTicket
from infrastructure.digitalocean_client import DigitalOceanClient

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    name = "blob"

    @abstractmethod
    def create_write_ticket(self) -> WriteTicket:
        """Reserva una clave nueva y devuelve la URL con la que escribirla."""

    @abstractmethod
    def put(self, ticket: WriteTicket, data: bytes, content_type: str) -> None:
        """Escribe el contenido; lanza UploadFailedError si el almacén no confirma."""

    @abstractmethod
    def get(self, key: str) -> StoredImage:
        """Lanza ImageNotFoundError si la clave no existe."""

    @abstractmethod
    def normalize_reference(self, url: str) -> str:
        """Convierte la URL de escritura en la referencia interna que ve el cliente."""

    def key_for(self, object_id: str) -> str:
        """Clave interna para el identificador que aparece en una referencia."""
        return object_id


class MemoryBlobStore(BlobStore):
    """Tabla clave -> bytes del proceso; se pierde al reiniciar."""

    name = "memory"
    URL_PREFIX = "/api/objects/memory/"

    def __init__(self, ttl_seconds: int = 900):
        self.ttl_seconds = ttl_seconds
        self._images: dict[str, StoredImage] = {}
        self._pending: dict[str, datetime.datetime] = {}

    def create_write_ticket(self, now: datetime.datetime = None) -> WriteTicket:
        now = now or datetime.datetime.now(datetime.timezone.utc)
        self._prune_expired(now)
        key = str(uuid.uuid4())
        expires_at = now + datetime.timedelta(seconds=self.ttl_seconds)
        self._pending[key] = expires_at
        return WriteTicket(key=key, url=f"{self.URL_PREFIX}{key}", expires_at=expires_at)

    def put(self, ticket: WriteTicket, data: bytes, content_type: str) -> None:
        # Cada ticket sirve para una sola escritura y caduca
        expires_at = self._pending.pop(ticket.key, None)
        if expires_at is None:
            raise UploadFailedError(f"no pending write ticket for {ticket.key}")
        if expires_at <= datetime.datetime.now(datetime.timezone.utc):
            raise UploadFailedError(f"write ticket for {ticket.key} has expired")
        self._images[ticket.key] = StoredImage(key=ticket.key, content=data, content_type=content_type)
        logger.info(f"Imagen guardada en memoria: {ticket.key} ({len(data)} bytes)")

    def get(self, key: str) -> StoredImage:
        image = self._images.get(key)
        if image is None:
            raise ImageNotFoundError(key)
        return image

    def normalize_reference(self, url: str) -> str:
        path = urlparse(url).path
        if not path.startswith(self.URL_PREFIX):
            return url
        return f"/api/images/{path[len(self.URL_PREFIX):]}"

    def ticket_for(self, key: str) -> WriteTicket:
        return WriteTicket(key=key, url=f"{self.URL_PREFIX}{key}", expires_at=self._pending.get(key))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _prune_expired(self, now: datetime.datetime) -> None:
        expired = [key for key, expires_at in self._pending.items() if expires_at <= now]
        for key in expired:
            del self._pending[key]
        if expired:
            logger.info(f"Tickets de escritura caducados descartados: {len(expired)}")

    def __contains__(self, key: str) -> bool:
        return key in self._images

    def __len__(self) -> int:
        return len(self._images)


class SpacesBlobStore(BlobStore):
    """Almacén duradero en DigitalOcean Spaces mediante URLs prefirmadas."""

    name = "spaces"

    def __init__(self, client: DigitalOceanClient, private_dir: str = "uploads", ttl_seconds: int = 900):
        self.client = client
        self.private_dir = private_dir.strip("/")
        self.ttl_seconds = ttl_seconds

    def create_write_ticket(self) -> WriteTicket:
        key = f"{self.private_dir}/{uuid.uuid4()}"
        now = datetime.datetime.now(datetime.timezone.utc)
        url = self.client.create_upload_url(key, expires_in=self.ttl_seconds, now=now)
        return WriteTicket(
            key=key,
            url=url,
            expires_at=now + datetime.timedelta(seconds=self.ttl_seconds),
        )

    def put(self, ticket: WriteTicket, data: bytes, content_type: str) -> None:
        self.client.upload_to_url(ticket.url, data, content_type)
        logger.info(f"Imagen subida a Spaces: {ticket.key} ({len(data)} bytes)")

    def get(self, key: str) -> StoredImage:
        content, content_type = self.client.download_file(key)
        return StoredImage(key=key, content=content, content_type=content_type)

    def normalize_reference(self, url: str) -> str:
        path = self.client.path_from_url(url)
        if path is None:
            return url
        prefix = f"{self.private_dir}/"
        if not path.startswith(prefix):
            return f"/{path}"
        return f"/objects/{path[len(prefix):]}"

    def key_for(self, object_id: str) -> str:
        return f"{self.private_dir}/{object_id.lstrip('/')}"
