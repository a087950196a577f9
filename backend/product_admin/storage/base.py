"""Interfaz común de los servicios de almacenamiento de imágenes."""

from abc import ABC, abstractmethod


class BlobStorage(ABC):
    """Almacenamiento de objetos para las imágenes de productos.

    Las implementaciones lanzan ``StorageError`` cuando la operación falla.
    """

    bucket: str

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        """Sube ``data`` a ``path``. Con ``upsert`` se sobrescribe el objeto existente."""

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        """Devuelve la URL pública y duradera del objeto."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Elimina el objeto en ``path``."""

    def close(self) -> None:
        pass
