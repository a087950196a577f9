"""Utilidades compartidas por las pruebas."""
import os
import tempfile
import threading
import unittest
from decimal import Decimal
from typing import Dict, List, Optional, Set

# La configuración se lee al importar product_admin: fijar el entorno antes
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["STORAGE_BACKEND"] = "local"
os.environ.setdefault("LOCAL_STORAGE_DIR", tempfile.mkdtemp(prefix="product-admin-media-"))

import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from product_admin.api import deps
from product_admin.core.exceptions import StorageError
from product_admin.db.base_class import Base
from product_admin.main import app
from product_admin.models.image import Image
from product_admin.models.product import Product
from product_admin.storage.base import BlobStorage

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def png_bytes(size: int = 64) -> bytes:
    return PNG_HEADER + b"\x00" * max(0, size - len(PNG_HEADER))


class InMemoryStorage(BlobStorage):
    """Bucket en memoria con fallos configurables por contenido."""

    def __init__(self, bucket: str = "product-images"):
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.removed: List[str] = []
        self.fail_upload_payloads: Set[bytes] = set()
        self.fail_remove = False
        self._lock = threading.Lock()

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        if data in self.fail_upload_payloads:
            raise StorageError(f"Fallo simulado al subir {path}", path=path)
        with self._lock:
            if path in self.objects and not upsert:
                raise StorageError(f"El objeto ya existe: {path}", path=path)
            self.objects[path] = data
            self.content_types[path] = content_type

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.bucket}/{path}"

    def remove(self, path: str) -> None:
        if self.fail_remove:
            raise StorageError(f"Fallo simulado al eliminar {path}", path=path)
        with self._lock:
            self.objects.pop(path, None)
            self.removed.append(path)

    def paths_for(self, product_id: str) -> List[str]:
        return sorted(path for path in self.objects if path.startswith(f"products/{product_id}/"))


class AppRequestsAdapter(BaseAdapter):
    """Adaptador de requests que entrega las peticiones al TestClient de la app."""

    def __init__(self, client: TestClient):
        super().__init__()
        self.client = client

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        body = request.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        result = self.client.request(
            request.method,
            request.url,
            content=body,
            headers=dict(request.headers),
        )

        response = requests.Response()
        response.status_code = result.status_code
        response._content = result.content
        response.headers = CaseInsensitiveDict(result.headers)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


class ApiTestCase(unittest.TestCase):
    """Caso base: app con SQLite en memoria y bucket en memoria."""

    BASE_URL = "/api/v1"

    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.storage = InMemoryStorage()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[deps.get_db] = override_get_db
        app.dependency_overrides[deps.get_storage] = lambda: self.storage
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def db(self):
        return self.SessionLocal()

    def create_product(self, name="Producto", price=Decimal("10.00"), description=None, created_at=None) -> str:
        with self.db() as db:
            product = Product(name=name, price=price, description=description)
            if created_at is not None:
                product.created_at = created_at
            db.add(product)
            db.commit()
            return product.id

    def create_image(self, product_id: str, image_id: str, order_index: int, extension: str = "png") -> Image:
        """Registra una imagen con su objeto en el bucket en memoria."""
        image_uuid = f"uuid-{image_id}"
        path = f"products/{product_id}/{image_uuid}.{extension}"
        self.storage.objects[path] = png_bytes()
        with self.db() as db:
            image = Image(
                id=image_id,
                uuid=image_uuid,
                url=self.storage.get_public_url(path),
                product_id=product_id,
                order_index=order_index,
            )
            db.add(image)
            db.commit()
            db.refresh(image)
            db.expunge(image)
            return image

    def images_of(self, product_id: str) -> List[Image]:
        with self.db() as db:
            images = (
                db.query(Image)
                .filter(Image.product_id == product_id)
                .order_by(Image.order_index)
                .all()
            )
            for image in images:
                db.expunge(image)
            return images

    def count_products(self) -> int:
        with self.db() as db:
            return db.query(Product).count()

    def submit(self, data, files=None):
        return self.client.post(f"{self.BASE_URL}/products/", data=data, files=files)

    def requests_session(self) -> requests.Session:
        session = requests.Session()
        session.mount("http://testserver", AppRequestsAdapter(self.client))
        return session

    def print_response(self, response, title: Optional[str] = None) -> None:
        if title:
            print(f"\n----- Test: {title} -----")
        print(f"Status Code: {response.status_code}")
        print(f"Response: {response.text[:200]}...")
