# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets up the test environment before the app modules are imported and
# provides shared fixtures (image buffers, a fresh in-memory store, an API
# client wired to that store).
# =============================================================================

import io
import os

# core.config reads the environment at import time
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.setdefault("LOG_LEVEL", "warning")
os.environ.setdefault("DO_SPACES_KEY", "test-access-key")
os.environ.setdefault("DO_SPACES_SECRET", "test-secret-key")

import pytest
from PIL import Image
from fastapi.testclient import TestClient

from core.dependencies import get_durable_store, get_ephemeral_store
from domain.schemas.file_schema import UploadItem
from infrastructure.blob_store import MemoryBlobStore


def build_image(width=200, height=100, fmt="PNG", mode="RGB", color=(200, 30, 30)):
    """Encode a solid-colour image with Pillow."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (255,)
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


@pytest.fixture
def make_image():
    return build_image


@pytest.fixture
def decode_image():
    return open_image


@pytest.fixture
def png_bytes():
    return build_image(200, 100, "PNG")


@pytest.fixture
def large_png_bytes():
    return build_image(2000, 1500, "PNG")


@pytest.fixture
def text_bytes():
    return b"this is a shopping list, not a picture\n"


@pytest.fixture
def make_item():
    def _make(filename="photo.png", data=b"", content_type="image/png"):
        return UploadItem(filename=filename, content_type=content_type, data=data)
    return _make


@pytest.fixture
def memory_store():
    return MemoryBlobStore()


@pytest.fixture
def client(memory_store):
    """TestClient whose ephemeral and durable stores are one fresh memory table."""
    from main import app

    app.dependency_overrides[get_ephemeral_store] = lambda: memory_store
    app.dependency_overrides[get_durable_store] = lambda: memory_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def split_client():
    """Factory: TestClient with distinct ephemeral and durable stores."""
    from main import app

    clients = []

    def _make(ephemeral, durable):
        app.dependency_overrides[get_ephemeral_store] = lambda: ephemeral
        app.dependency_overrides[get_durable_store] = lambda: durable
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.close()
    app.dependency_overrides.clear()
