from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from domain.enums.image_formats import OutputFormat, ResizeFit

# Los perfiles se definen al arrancar y no cambian
model_config = ConfigDict(frozen=True)

class ProcessingProfile(BaseModel):
    """
    Parámetros de redimensionado y recodificación aplicados a todo un lote.

    output_format=None conserva el formato de origen (png, jpeg o webp);
    cualquier otro formato de origen se recodifica como PNG.
    """
    model_config = model_config
    name: str
    max_width: int = Field(gt=0)
    max_height: int = Field(gt=0)
    quality: int = Field(default=85, ge=1, le=100)
    output_format: Optional[OutputFormat] = None
    resize_fit: ResizeFit = ResizeFit.INSIDE

    def target_format(self, source: Optional[OutputFormat]) -> OutputFormat:
        if self.output_format is not None:
            return self.output_format
        return source or OutputFormat.PNG

class ImageMetadata(BaseModel):
    model_config = model_config
    width: int
    height: int
    format: str
    mode: str
    has_alpha: bool = False

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

# Perfil general de anuncios: caja 1200x800, sin ampliar, conserva formato
MARKETPLACE_PROFILE = ProcessingProfile(
    name="marketplace",
    max_width=1200,
    max_height=800,
    quality=85,
)

# Perfil estandarizado: recorte exacto 800x600, fondo blanco, siempre JPEG
STANDARDIZED_PROFILE = ProcessingProfile(
    name="standardized",
    max_width=800,
    max_height=600,
    quality=85,
    output_format=OutputFormat.JPEG,
    resize_fit=ResizeFit.COVER,
)

PROFILES = {
    MARKETPLACE_PROFILE.name: MARKETPLACE_PROFILE,
    STANDARDIZED_PROFILE.name: STANDARDIZED_PROFILE,
}
