from enum import Enum


class OutputFormat(str, Enum):
    """Formatos de salida soportados al recodificar una imagen."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def pil_format(self) -> str:
        """Nombre del formato para Pillow."""
        return self.value.upper()

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return ".jpg" if self is OutputFormat.JPEG else f".{self.value}"

    @classmethod
    def from_pil(cls, pil_format: str):
        """Devuelve el formato equivalente o None si no es uno de salida (p.ej. GIF, BMP)."""
        if not pil_format:
            return None
        name = pil_format.lower()
        if name in ("jpg", "mpo"):
            name = "jpeg"
        try:
            return cls(name)
        except ValueError:
            return None


class ResizeFit(str, Enum):
    # Reducir hasta caber en la caja, sin ampliar nunca
    INSIDE = "inside"
    # Recortar y escalar hasta llenar exactamente la caja
    COVER = "cover"
