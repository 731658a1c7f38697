from pydantic import BaseModel
from dotenv import load_dotenv
import os
from typing import Optional

load_dotenv()  # Carga las variables de entorno desde .env

class Settings(BaseModel):
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")  # memory | spaces
    DO_SPACES_KEY: Optional[str] = os.getenv("DO_SPACES_KEY")
    DO_SPACES_SECRET: Optional[str] = os.getenv("DO_SPACES_SECRET")
    DO_SPACES_BUCKET: str = os.getenv("DO_SPACES_BUCKET", "capyconnect")
    DO_SPACES_REGION: str = os.getenv("DO_SPACES_REGION", "nyc3")
    DO_SPACES_ENDPOINT: str = os.getenv("DO_SPACES_ENDPOINT", "https://nyc3.digitaloceanspaces.com")
    OBJECT_PRIVATE_DIR: str = os.getenv("OBJECT_PRIVATE_DIR", "uploads")
    UPLOAD_URL_TTL_SEC: int = int(os.getenv("UPLOAD_URL_TTL_SEC", "900"))
    UPLOAD_TIMEOUT_SEC: float = float(os.getenv("UPLOAD_TIMEOUT_SEC", "30"))
    SIMPLE_MAX_FILES: int = int(os.getenv("SIMPLE_MAX_FILES", "8"))
    ENHANCED_MAX_FILES: int = int(os.getenv("ENHANCED_MAX_FILES", "3"))
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    MAX_IMAGE_PIXELS: int = int(os.getenv("MAX_IMAGE_PIXELS", "50000000"))  # ancho x alto declarado
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

    @property
    def max_file_size_bytes(self) -> int:
        """Límite por archivo en bytes"""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

settings = Settings()

STORAGE_BACKEND = settings.STORAGE_BACKEND
DO_SPACES_KEY = settings.DO_SPACES_KEY
DO_SPACES_SECRET = settings.DO_SPACES_SECRET
DO_SPACES_BUCKET = settings.DO_SPACES_BUCKET
DO_SPACES_REGION = settings.DO_SPACES_REGION
DO_SPACES_ENDPOINT = settings.DO_SPACES_ENDPOINT
OBJECT_PRIVATE_DIR = settings.OBJECT_PRIVATE_DIR
UPLOAD_URL_TTL_SEC = settings.UPLOAD_URL_TTL_SEC
UPLOAD_TIMEOUT_SEC = settings.UPLOAD_TIMEOUT_SEC
MAX_IMAGE_PIXELS = settings.MAX_IMAGE_PIXELS
