"""Almacenamiento en disco local, servido por la aplicación bajo LOCAL_STORAGE_URL."""

from __future__ import annotations

import logging
from pathlib import Path

from product_admin.core.exceptions import StorageError
from product_admin.storage.base import BlobStorage

logger = logging.getLogger(__name__)


class LocalStorage(BlobStorage):

    def __init__(self, root_dir: str | Path, bucket: str, base_url: str = "/media"):
        self.root = Path(root_dir).resolve()
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")
        self.bucket_dir = self.root / bucket
        self.bucket_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.bucket_dir / path.lstrip("/")).resolve()
        # Evitar escrituras fuera del bucket (../)
        if self.bucket_dir not in target.parents:
            raise StorageError(f"Ruta fuera del bucket: {path}", path=path)
        return target

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError(f"El objeto ya existe: {path}", path=path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Error al escribir {path}: {e}", path=path) from e
        logger.debug(f"Objeto guardado en disco: {target}")

    def get_public_url(self, path: str) -> str:
        if not path:
            raise StorageError("Ruta vacía, no se puede generar la URL pública", path=path)
        return f"{self.base_url}/{self.bucket}/{path.lstrip('/')}"

    def remove(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Error al eliminar {path}: {e}", path=path) from e
