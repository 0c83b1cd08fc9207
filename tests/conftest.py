# =============================================================================
# tests/conftest.py - Fixtures compartilhadas
# =============================================================================
# Cada teste recebe um banco SQLite e um diretório de uploads temporários,
# e uma aplicação montada com essas configurações.
# =============================================================================

import io
import json
import os

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import create_app
from motocatalog.config import Settings
from motocatalog.database import Database
from motocatalog.image_processing import ImageProcessor
from motocatalog.image_storage import ImageStorage


def make_image(fmt="JPEG", size=(100, 80), color=(200, 30, 30), mode="RGB"):
    """Gera uma imagem em memória no formato pedido."""
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_noisy_jpeg(size=(320, 320)):
    """JPEG com ruído aleatório, para ter um arquivo de tamanho realista (~100KB)."""
    image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def database(settings):
    db = Database(settings.DATABASE_URL)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def storage(settings):
    return ImageStorage(settings.UPLOAD_DIR, mode=settings.IMAGE_STORAGE)


@pytest.fixture
def processor(settings, storage):
    return ImageProcessor(settings, storage)


@pytest.fixture
def uploaded_files(settings):
    """Lista os arquivos gravados no diretório de uploads."""
    def _list():
        root = os.path.join(settings.UPLOAD_DIR, "motorcycles")
        if not os.path.isdir(root):
            return []
        return sorted(os.listdir(root))
    return _list


@pytest.fixture
def red_color_json():
    return json.dumps([{"name": "Vermelho", "hex": "#FF0000"}])
