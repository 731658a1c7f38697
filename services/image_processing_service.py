from PIL import Image, ImageOps, UnidentifiedImageError
import io
import logging
from typing import Dict, Iterable

from core import config
from core.exceptions import InvalidImageError
from domain.enums.image_formats import OutputFormat, ResizeFit
from domain.enums.image_sizes import ImageSize
from domain.models import ImageMetadata, ProcessingProfile
from domain.schemas.file_schema import ProcessedImage

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)

class ImageProcessingService:

    @staticmethod
    def get_metadata(image_bytes: bytes, filename: str = "image") -> ImageMetadata:
        """Dimensiones, formato y modo de color de un buffer"""
        with ImageProcessingService._open(image_bytes, filename) as img:
            return ImageMetadata(
                width=img.width,
                height=img.height,
                format=img.format.lower(),
                mode=img.mode,
                has_alpha=ImageProcessingService._has_alpha(img),
            )

    @staticmethod
    def is_valid_image(image_bytes: bytes) -> bool:
        try:
            ImageProcessingService.get_metadata(image_bytes)
            return True
        except InvalidImageError:
            return False

    @staticmethod
    def process_image(image_bytes: bytes, profile: ProcessingProfile, filename: str = "image") -> ProcessedImage:
        """
        Decodifica, redimensiona y recodifica una imagen según el perfil.

        - inside: solo reduce si excede la caja, conserva la relación de aspecto
        - cover: recorta centrado hasta llenar la caja y aplana sobre fondo blanco
        """
        with ImageProcessingService._open(image_bytes, filename) as source:
            target_format = profile.target_format(OutputFormat.from_pil(source.format))
            original_size = source.size

            if profile.resize_fit is ResizeFit.COVER:
                img = ImageProcessingService._flatten(source)
                img = ImageOps.fit(
                    img,
                    (profile.max_width, profile.max_height),
                    method=Image.LANCZOS,
                    centering=(0.5, 0.5),
                )
            else:
                img = source
                if img.width > profile.max_width or img.height > profile.max_height:
                    img = img.copy()
                    img.thumbnail((profile.max_width, profile.max_height), Image.LANCZOS)

            data = ImageProcessingService._encode(img, target_format, profile.quality)

            logger.info(
                f"Imagen procesada ({profile.name}): {filename} "
                f"{original_size[0]}x{original_size[1]} -> {img.width}x{img.height} {target_format.value}"
            )
            return ProcessedImage(
                filename=filename,
                data=data,
                content_type=target_format.content_type,
                width=img.width,
                height=img.height,
            )

    @staticmethod
    def create_variants(image_bytes: bytes, sizes: Iterable[ImageSize] = tuple(ImageSize),
                        filename: str = "image") -> Dict[str, bytes]:
        """Genera las variantes responsivas (PNG, sin ampliar) indexadas por sufijo"""
        results = {}
        for size in sizes:
            profile = ProcessingProfile(
                name=size.suffix,
                max_width=size.width,
                max_height=size.height,
                output_format=OutputFormat.PNG,
            )
            results[size.suffix] = ImageProcessingService.process_image(image_bytes, profile, filename).data
        return results

    @staticmethod
    def _open(image_bytes: bytes, filename: str) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(image_bytes))
            # Cabecera leída; se rechaza antes de reservar los píxeles
            if img.width * img.height > config.MAX_IMAGE_PIXELS:
                img.close()
                raise InvalidImageError(filename, f"image exceeds {config.MAX_IMAGE_PIXELS} pixels")
            img.load()
        except UnidentifiedImageError:
            raise InvalidImageError(filename, "unrecognized image format")
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise InvalidImageError(filename, str(e))

        if not img.width or not img.height or not img.format:
            img.close()
            raise InvalidImageError(filename, "missing width, height or format")
        return img

    @staticmethod
    def _has_alpha(img: Image.Image) -> bool:
        return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)

    @staticmethod
    def _flatten(img: Image.Image) -> Image.Image:
        """Elimina la transparencia pegando la imagen sobre fondo blanco"""
        if img.mode in ("P", "PA") and ImageProcessingService._has_alpha(img):
            img = img.convert("RGBA")

        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, WHITE)
            background.paste(img, mask=img.split()[-1])
            return background

        if img.mode not in ('RGB', 'L'):
            return img.convert('RGB')
        return img

    @staticmethod
    def _encode(img: Image.Image, target_format: OutputFormat, quality: int) -> bytes:
        img_byte_arr = io.BytesIO()

        if target_format is OutputFormat.JPEG:
            img = ImageProcessingService._flatten(img)
            img.save(img_byte_arr, format='JPEG', quality=quality, progressive=True, optimize=True)
        elif target_format is OutputFormat.WEBP:
            if img.mode not in ('RGB', 'RGBA'):
                img = img.convert('RGBA' if ImageProcessingService._has_alpha(img) else 'RGB')
            img.save(img_byte_arr, format='WEBP', quality=quality)
        else:
            # PNG no tiene calidad con pérdida: máxima compresión, filtrado adaptativo de zlib
            if img.mode not in ('1', 'L', 'LA', 'P', 'RGB', 'RGBA'):
                img = img.convert('RGBA' if ImageProcessingService._has_alpha(img) else 'RGB')
            img.save(img_byte_arr, format='PNG', optimize=True, compress_level=9)

        return img_byte_arr.getvalue()
