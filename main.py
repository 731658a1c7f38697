import logging

import uvicorn
from dotenv import load_dotenv
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()  # Load environment variables from a .env file

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import api, objects
from core.config import settings
from core.dependencies import get_durable_store
from core.exceptions import ImageServiceError, image_service_exception_handler

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CapyConnect Images API",
    description="Subida, procesamiento y entrega de imágenes de anuncios",
    version="1.0.0",
)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)

app.add_exception_handler(ImageServiceError, image_service_exception_handler)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception):
    logger.exception(f"Error inesperado en {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(api.router)
app.include_router(objects.router)


@app.get("/")
async def root():
    return {"name": "CapyConnect Images API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health")
async def health():
    return {"status": "ok", "storage_backend": get_durable_store().name}


# Punto de entrada para ejecutar la aplicación
if __name__ == "__main__":
    uvicorn.run(
        "main:app",  # Módulo y nombre de la aplicación
        host="127.0.0.1",
        port=8000,  # Puerto por defecto
        reload=True,  # Recarga automática en desarrollo
        log_level=settings.LOG_LEVEL  # Nivel de logs
    )
