"""Estado del editor de imágenes de un producto."""

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set, Union

from product_admin.client import order_model
from product_admin.client.order_model import (
    ExistingEntry,
    ImageOrder,
    OrderedEntry,
    PersistedImage,
    SerializedOrder,
    StagedEntry,
    StagedFile,
)
from product_admin.client.previews import PreviewRegistry

logger = logging.getLogger(__name__)


def new_temp_id() -> str:
    return f"new-{uuid.uuid4().hex}"


def staged_file_from_path(path: Union[str, Path], content_type: Optional[str] = None) -> StagedFile:
    path = Path(path)
    guessed, _ = mimetypes.guess_type(path.name)
    return StagedFile(
        filename=path.name,
        content_type=content_type or guessed or "application/octet-stream",
        data=path.read_bytes(),
    )


class ImageOrderEditor:
    """
    Lista ordenable de imágenes de un producto.

    Aplica las transiciones de ``order_model`` sobre el estado actual y se
    encarga de los efectos: crear y liberar vistas previas, y recordar las
    imágenes guardadas que el usuario quitó para pedir su eliminación.
    """

    def __init__(
        self,
        images: Iterable[PersistedImage] = (),
        previews: Optional[PreviewRegistry] = None,
        id_factory: Callable[[], str] = new_temp_id,
    ):
        self.previews = previews if previews is not None else PreviewRegistry()
        self._new_id = id_factory
        self._released: Set[str] = set()
        self.order: ImageOrder = order_model.from_persisted(images)
        self.deleted_image_ids: List[str] = []

    @property
    def entries(self):
        return self.order.entries

    def add_files(self, files: Iterable[StagedFile]) -> List[StagedEntry]:
        staged = [
            StagedEntry(
                temp_id=self._new_id(),
                file=file,
                preview=self.previews.create(file),
                order_index=0,
            )
            for file in files
        ]
        try:
            self.order = order_model.add_staged(self.order, staged)
        except ValueError:
            for entry in staged:
                self.previews.release(entry.preview)
            raise
        return [self.order[index] for index in range(len(self.order) - len(staged), len(self.order))]

    def reorder(self, from_index: int, to_index: Optional[int]) -> None:
        self.order = order_model.reorder(self.order, from_index, to_index)

    def remove(self, key: str) -> Optional[OrderedEntry]:
        self.order, removed = order_model.remove(self.order, key)
        if isinstance(removed, StagedEntry):
            self._release(removed)
        elif isinstance(removed, ExistingEntry):
            if removed.image_id not in self.deleted_image_ids:
                self.deleted_image_ids.append(removed.image_id)
        else:
            logger.debug(f"Entrada {key} no encontrada")
        return removed

    def serialize(self) -> SerializedOrder:
        return order_model.serialize(self.order)

    def _release(self, entry: StagedEntry) -> None:
        if entry.preview in self._released:
            return
        self.previews.release(entry.preview)
        self._released.add(entry.preview)

    def teardown(self) -> None:
        """Libera las vistas previas de todas las entradas nuevas (idempotente)."""
        for entry in self.order.staged():
            self._release(entry)

    def replace_product(self, images: Iterable[PersistedImage]) -> None:
        """Cambia el producto en edición descartando el estado anterior."""
        self.teardown()
        self._released.clear()
        self.order = order_model.from_persisted(images)
        self.deleted_image_ids = []
