"""Lectura del formulario multipart enviado por el editor de producto.

Campos reconocidos:

- ``productId`` (ausente al crear), ``name``, ``description``, ``price``
- ``images``: partes de archivo con las imágenes nuevas
- ``newImages[k].order_index``: posición de la k-ésima imagen nueva
- ``images[i].id`` / ``images[i].order_index``: posición de cada imagen existente
- ``deletedImages``: arreglo JSON de ids, o un id por valor repetido
"""

import json
import logging
from typing import List, Optional

from starlette.datastructures import FormData, UploadFile

from product_admin.services.product_submission import ImagePosition, ProductSubmission, StagedUpload

logger = logging.getLogger(__name__)

FILES_FIELD = "images"
DELETED_FIELD = "deletedImages"
IMAGE_ID_KEY = "images[{index}].id"
IMAGE_ORDER_KEY = "images[{index}].order_index"
NEW_IMAGE_ORDER_KEY = "newImages[{index}].order_index"

def _text(form: FormData, key: str) -> Optional[str]:
    value = form.get(key)
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)

def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None

async def read_uploads(form: FormData) -> List[StagedUpload]:
    uploads = []
    for item in form.getlist(FILES_FIELD):
        if not isinstance(item, UploadFile):
            continue
        try:
            data = await item.read()
        finally:
            await item.close()

        # Un input de archivo vacío envía una parte sin nombre ni contenido
        if not item.filename and not data:
            continue

        index = len(uploads)
        order_index = _parse_int(_text(form, NEW_IMAGE_ORDER_KEY.format(index=index)))
        uploads.append(StagedUpload(
            filename=item.filename or f"imagen-{index + 1}",
            content_type=item.content_type or "application/octet-stream",
            data=data,
            order_index=order_index if order_index is not None else index + 1,
        ))
    return uploads

def read_positions(form: FormData) -> List[ImagePosition]:
    positions = []
    index = 0
    while True:
        image_id = _text(form, IMAGE_ID_KEY.format(index=index))
        raw_order = _text(form, IMAGE_ORDER_KEY.format(index=index))
        if not image_id or raw_order is None:
            break

        order_index = _parse_int(raw_order)
        if order_index is None or order_index < 1:
            logger.warning(f"order_index inválido para la imagen {image_id}: {raw_order!r}")
        else:
            positions.append(ImagePosition(image_id=image_id, order_index=order_index))
        index += 1
    return positions

def read_deleted_ids(form: FormData) -> List[str]:
    deleted = []
    for value in form.getlist(DELETED_FIELD):
        if isinstance(value, UploadFile):
            continue
        value = str(value).strip()
        if not value:
            continue
        if value.startswith("["):
            try:
                parsed = json.loads(value)
            except ValueError as e:
                logger.error(f"Error al procesar imágenes eliminadas: {e}")
                continue
            deleted.extend(str(image_id) for image_id in parsed if image_id)
        else:
            deleted.append(value)
    return deleted

async def parse_submission_form(form: FormData) -> ProductSubmission:
    """
    Convierte el formulario recibido en un ProductSubmission.
    """
    submission = ProductSubmission(
        product_id=(_text(form, "productId") or "").strip() or None,
        name=_text(form, "name"),
        description=_text(form, "description"),
        price=_text(form, "price"),
        uploads=await read_uploads(form),
        positions=read_positions(form),
        deleted_image_ids=read_deleted_ids(form),
    )

    logger.debug(
        f"Formulario recibido: productId={submission.product_id}, "
        f"archivos={[(u.filename, u.content_type, u.size, u.order_index) for u in submission.uploads]}, "
        f"posiciones={[(p.image_id, p.order_index) for p in submission.positions]}, "
        f"eliminadas={submission.deleted_image_ids}"
    )
    return submission
