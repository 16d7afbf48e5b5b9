import io
import os
import shutil
import tempfile
from pathlib import Path

# main mounts the uploads dir at import time; tests never reach a real Mongo
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="haritha-uploads-"))
os.environ.pop("DATABASE_URL", None)

import mongomock
import pytest
from fastapi.testclient import TestClient
from PIL import Image

import database
import media
from database import create_document
from main import app
from schemas import Product

SHIPPING = {
    "first_name": "Asha",
    "last_name": "Perera",
    "contact_number": "0771234567",
    "email": "Asha@Example.com",
    "street_address": "12 Temple Road",
    "zip": "10100",
    "city": "Colombo",
    "province": "Western",
}


def png_bytes(size=(40, 30), color=(30, 160, 60)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def uploads():
    # the same directory main serves under /uploads, emptied for every test
    path = Path(media.upload_dir())
    for entry in path.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    return path


@pytest.fixture
def db():
    test_db = mongomock.MongoClient()["haritha_test"]
    database.ensure_indexes(test_db)
    return test_db


@pytest.fixture
def client(db):
    app.dependency_overrides[database.current_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    def _make(name="Tomato Seeds", price=100.0, quantity=5, category="Seeds", **extra):
        product = Product(name=name, price=price, description=f"{name} for home gardens",
                          quantity=quantity, category=category, image="/uploads/compressed-x.jpg", **extra)
        return create_document(db, "product", product)
    return _make


@pytest.fixture
def register(client):
    def _register(email="asha@example.com", password="s3cret-pass", full_name="Asha Perera"):
        resp = client.post("/api/users/register", json={
            "full_name": full_name,
            "email": email,
            "password": password,
            "reenter_password": password,
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]
    return _register
