"""Cliente del API REST de Supabase Storage."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from product_admin.core.exceptions import StorageError
from product_admin.storage.base import BlobStorage

logger = logging.getLogger(__name__)


class SupabaseStorage(BlobStorage):
    """Sube, publica y elimina objetos de un bucket público de Supabase."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.Client(
            base_url=f"{self.base_url}/storage/v1",
            headers={
                "Authorization": f"Bearer {service_key}",
                "apikey": service_key,
            },
            timeout=timeout,
            transport=transport,
        )

    def _object_path(self, path: str) -> str:
        return f"/object/{self.bucket}/{quote(path.lstrip('/'))}"

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        try:
            response = self._client.post(
                self._object_path(path),
                content=data,
                headers={
                    "Content-Type": content_type or "application/octet-stream",
                    "x-upsert": "true" if upsert else "false",
                    "cache-control": "max-age=3600",
                },
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Error de conexión al subir {path}: {e}", path=path) from e

        if response.status_code >= 400:
            raise StorageError(
                f"Supabase rechazó la subida de {path} ({response.status_code}): {response.text[:200]}",
                path=path,
            )
        logger.debug(f"Objeto subido a Supabase: {self.bucket}/{path}")

    def get_public_url(self, path: str) -> str:
        if not path:
            raise StorageError("Ruta vacía, no se puede generar la URL pública", path=path)
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path.lstrip('/'))}"

    def remove(self, path: str) -> None:
        try:
            response = self._client.request(
                "DELETE",
                f"/object/{self.bucket}",
                json={"prefixes": [path]},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Error de conexión al eliminar {path}: {e}", path=path) from e

        if response.status_code >= 400:
            raise StorageError(
                f"Supabase rechazó la eliminación de {path} ({response.status_code}): {response.text[:200]}",
                path=path,
            )
        logger.debug(f"Objeto eliminado de Supabase: {self.bucket}/{path}")

    def close(self) -> None:
        self._client.close()
