from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

class UploadItem(BaseModel):
    filename: str  # Ej: "sofa.png"
    content_type: Optional[str] = None  # Tipo MIME declarado por el cliente
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

class ProcessedImage(BaseModel):
    """Resultado de recodificar un archivo, aún sin guardar."""
    filename: str
    data: bytes
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None

class WriteTicket(BaseModel):
    """URL prefirmada que autoriza un único PUT al almacenamiento."""
    key: str  # Ej: "uploads/0b5c..."
    url: str
    method: Literal["PUT"] = "PUT"
    expires_at: Optional[datetime] = None

class StoredImage(BaseModel):
    key: str
    content: bytes
    content_type: str = "image/jpeg"

class AcceptedFile(BaseModel):
    kind: Literal["accepted"] = "accepted"
    filename: str
    reference: str

class RejectedFile(BaseModel):
    kind: Literal["rejected"] = "rejected"
    filename: str
    reason: str

FileOutcome = Annotated[Union[AcceptedFile, RejectedFile], Field(discriminator="kind")]

class UploadResponse(BaseModel):
    success: bool
    imageUrls: List[str]
    message: str
    rejected: List[RejectedFile] = []

class UploadURLResponse(BaseModel):
    uploadURL: str

class NormalizeImagesResponse(BaseModel):
    objectPaths: List[str]
