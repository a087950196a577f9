"""Vistas previas locales de los archivos seleccionados en el editor."""

import logging
import uuid
from typing import Dict, Optional

from product_admin.client.order_model import StagedFile

logger = logging.getLogger(__name__)

PREVIEW_SCHEME = "preview"


class PreviewRegistry:
    """Guarda el contenido de cada vista previa hasta que se libera."""

    def __init__(self):
        self._previews: Dict[str, StagedFile] = {}

    def create(self, file: StagedFile) -> str:
        ref = f"{PREVIEW_SCHEME}:{uuid.uuid4().hex}"
        self._previews[ref] = file
        return ref

    def resolve(self, ref: str) -> Optional[StagedFile]:
        return self._previews.get(ref)

    def release(self, ref: str) -> bool:
        """Libera la vista previa. Devuelve False si ya estaba liberada."""
        released = self._previews.pop(ref, None) is not None
        if not released:
            logger.debug(f"Vista previa {ref} ya liberada")
        return released

    def __contains__(self, ref: str) -> bool:
        return ref in self._previews

    def __len__(self) -> int:
        return len(self._previews)
