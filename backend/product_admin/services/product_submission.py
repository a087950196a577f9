"""Reconciliación del formulario de producto.

Un envío guarda el producto y después sincroniza sus imágenes en cuatro fases,
siempre en este orden:

1. validación de campos (aborta sin persistir nada),
2. alta o actualización del producto (un fallo aborta el envío),
3. subida de las imágenes nuevas (cada archivo es independiente),
4. eliminación de las imágenes marcadas y escritura de las posiciones
   (solo al actualizar).

Las fases 3 y 4 degradan: un fallo individual se registra en el log y el envío
sigue reportando éxito. No hay transacción que abarque base de datos y bucket.
"""

import asyncio
import logging
import mimetypes
import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from product_admin.core.config import settings
from product_admin.core.exceptions import ProductNotFoundError, ProductPersistenceError, StorageError
from product_admin.models.image import Image
from product_admin.models.product import Product
from product_admin.schemas.product import SubmissionErrors, SubmissionResponse
from product_admin.storage.base import BlobStorage

logger = logging.getLogger(__name__)

NOOP_MESSAGE = "No operation performed"
CREATED_MESSAGE = "Producto creado correctamente"
UPDATED_MESSAGE = "Producto actualizado correctamente"

# Solo extensiones simples: el nombre del archivo lo controla el cliente
EXTENSION_PATTERN = re.compile(r"[a-z0-9]{1,10}")

@dataclass
class StagedUpload:
    """Archivo nuevo recibido en el envío, con la posición asignada por el cliente."""
    filename: str
    content_type: str
    data: bytes
    order_index: int

    @property
    def size(self) -> int:
        return len(self.data)

@dataclass
class ImagePosition:
    image_id: str
    order_index: int

@dataclass
class ProductSubmission:
    product_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    uploads: List[StagedUpload] = field(default_factory=list)
    positions: List[ImagePosition] = field(default_factory=list)
    deleted_image_ids: List[str] = field(default_factory=list)

    @property
    def is_update(self) -> bool:
        return bool(self.product_id)

    def is_noop(self) -> bool:
        # Formulario en blanco: ningún campo ni archivo enviado
        return not (self.product_id or self.name or self.description or self.price or self.uploads)

@dataclass
class SubmissionResult:
    status_code: int
    response: SubmissionResponse
    uploaded: List[Image] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    deleted_image_ids: List[str] = field(default_factory=list)
    failed_positions: List[str] = field(default_factory=list)

def parse_price(raw: Optional[str]) -> Optional[Decimal]:
    """Devuelve el precio si es un número finito mayor que cero."""
    if raw is None:
        return None
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price

def validate_submission(submission: ProductSubmission, max_total_size: int) -> SubmissionErrors:
    """
    Valida los campos del producto y acumula todos los errores encontrados.
    """
    errors = SubmissionErrors()

    if not (submission.name or "").strip():
        errors.name = "El nombre es requerido"

    if parse_price(submission.price) is None:
        errors.price = "El precio debe ser un número positivo"

    total_size = sum(upload.size for upload in submission.uploads)
    if total_size > max_total_size:
        errors.images = (
            f"El tamaño total de las imágenes ({total_size / 1_000_000:.1f}MB) "
            f"excede el límite de {max_total_size / 1_000_000:g}MB."
        )

    return errors

def file_extension(filename: str, content_type: str) -> str:
    """Extensión del archivo original; si no es válida, se deduce del tipo declarado."""
    if filename and "." in filename:
        extension = filename.rsplit(".", 1)[-1].strip().lower()
        if EXTENSION_PATTERN.fullmatch(extension):
            return extension
    guessed = mimetypes.guess_extension(content_type or "")
    return guessed.lstrip(".") if guessed else "png"

def build_storage_path(product_id: str, image_uuid: str, extension: str) -> str:
    return f"products/{product_id}/{image_uuid}.{extension}"

def storage_path_for_image(image: Image) -> str:
    """Reconstruye la ruta del objeto a partir del uuid y la extensión de la URL."""
    url_path = image.url.split("?", 1)[0]
    extension = url_path.rsplit(".", 1)[-1] if "." in url_path.rsplit("/", 1)[-1] else "png"
    return build_storage_path(image.product_id, image.uuid, extension)

class ProductSubmissionService:
    """Procesa un envío del formulario de producto contra la base de datos y el bucket."""

    def __init__(
        self,
        db: Session,
        storage: BlobStorage,
        max_file_size: Optional[int] = None,
        max_total_size: Optional[int] = None,
    ):
        self.db = db
        self.storage = storage
        self.max_file_size = settings.MAX_IMAGE_FILE_SIZE if max_file_size is None else max_file_size
        self.max_total_size = settings.MAX_IMAGES_TOTAL_SIZE if max_total_size is None else max_total_size

    async def submit(self, submission: ProductSubmission) -> SubmissionResult:
        if submission.is_noop():
            logger.info("Envío sin datos detectado, no se realiza ninguna operación")
            return SubmissionResult(200, SubmissionResponse(success=NOOP_MESSAGE))

        # 1. Validación
        errors = validate_submission(submission, self.max_total_size)
        if errors.has_errors():
            logger.info(f"Envío rechazado por validación: {errors.model_dump(exclude_none=True)}")
            return SubmissionResult(400, SubmissionResponse(errors=errors))

        # 2. Alta o actualización del producto
        try:
            product_id = self.upsert_product(submission)
        except ProductNotFoundError as e:
            logger.warning(str(e))
            return SubmissionResult(
                404,
                SubmissionResponse(errors=SubmissionErrors(form="El producto que intentas actualizar no existe.")),
            )
        except ProductPersistenceError as e:
            logger.error(f"Error al guardar el producto: {e}")
            action = "actualizar" if submission.is_update else "crear"
            return SubmissionResult(
                500,
                SubmissionResponse(errors=SubmissionErrors(
                    form=f"Error al {action} el producto en la base de datos. Por favor, intenta de nuevo."
                )),
            )

        result = SubmissionResult(
            200 if submission.is_update else 201,
            SubmissionResponse(
                success=UPDATED_MESSAGE if submission.is_update else CREATED_MESSAGE,
                product_id=product_id,
            ),
        )

        # 3. Subida de imágenes nuevas
        if submission.uploads:
            await self.upload_images(product_id, submission.uploads, result)
            if not result.uploaded:
                result.response.errors = SubmissionErrors(images="No se pudo subir ninguna imagen")

        if submission.is_update:
            # 4. Eliminación de imágenes marcadas
            if submission.deleted_image_ids:
                await self.delete_images(product_id, submission.deleted_image_ids, result)

            # 5. Posiciones de las imágenes existentes
            if submission.positions:
                self.update_positions(product_id, submission.positions, result)

        return result

    def upsert_product(self, submission: ProductSubmission) -> str:
        """
        Crea el producto si no se envió un id, o lo actualiza si se envió.
        """
        values = {
            "name": submission.name.strip(),
            "description": (submission.description or "").strip() or None,
            "price": parse_price(submission.price),
        }

        try:
            if not submission.is_update:
                product = Product(**values)
                self.db.add(product)
            else:
                product = self.db.query(Product).filter(Product.id == submission.product_id).first()
                if product is None:
                    raise ProductNotFoundError(submission.product_id)
                for key, value in values.items():
                    setattr(product, key, value)

            self.db.commit()
            self.db.refresh(product)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ProductPersistenceError(str(e)) from e

        logger.info(f"Producto {'actualizado' if submission.is_update else 'creado'}: {product.id}")
        return product.id

    async def upload_images(self, product_id: str, uploads: List[StagedUpload], result: SubmissionResult) -> None:
        # Los archivos son independientes entre sí: se suben en paralelo
        outcomes = await asyncio.gather(
            *(self._upload_image(product_id, upload) for upload in uploads)
        )

        for upload, image in zip(uploads, outcomes):
            if image is None:
                result.skipped_files.append(upload.filename)
            else:
                result.uploaded.append(image)

        logger.info(
            f"Resumen de subida de imágenes para {product_id}: total={len(uploads)}, "
            f"exitosas={len(result.uploaded)}, fallidas={len(result.skipped_files)}"
        )

    async def _upload_image(self, product_id: str, upload: StagedUpload) -> Optional[Image]:
        if not (upload.content_type or "").startswith("image/"):
            logger.warning(f"Archivo ignorado: {upload.filename} - No es una imagen válida ({upload.content_type})")
            return None

        if upload.size > self.max_file_size:
            logger.warning(
                f"Archivo ignorado: {upload.filename} - Excede el tamaño máximo de "
                f"{self.max_file_size / 1_000_000:g}MB"
            )
            return None

        image_uuid = str(uuid.uuid4())
        path = build_storage_path(product_id, image_uuid, file_extension(upload.filename, upload.content_type))

        try:
            await run_in_threadpool(self.storage.upload, path, upload.data, upload.content_type, True)
            public_url = self.storage.get_public_url(path)
        except StorageError as e:
            logger.error(f"Error al subir imagen {upload.filename}: {e}")
            return None

        if not public_url:
            logger.error(f"No se pudo obtener la URL pública para: {path}")
            return None

        image = Image(
            uuid=image_uuid,
            url=public_url,
            product_id=product_id,
            order_index=upload.order_index,
        )
        try:
            self.db.add(image)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error al registrar imagen {upload.filename} en la base de datos: {e}")
            await self._remove_blob(path)
            return None

        logger.info(f"Imagen registrada: {image.id} ({path}) en posición {upload.order_index}")
        return image

    async def delete_images(self, product_id: str, image_ids: List[str], result: SubmissionResult) -> None:
        unique_ids = list(dict.fromkeys(image_ids))
        logger.info(f"Imágenes a eliminar de {product_id}: {unique_ids}")

        try:
            images = (
                self.db.query(Image)
                .filter(Image.product_id == product_id, Image.id.in_(unique_ids))
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error al obtener imágenes a eliminar: {e}")
            return

        found = {image.id for image in images}
        for image_id in unique_ids:
            if image_id not in found:
                logger.warning(f"Imagen {image_id} no pertenece al producto {product_id}, se ignora")

        # Los objetos del bucket se eliminan primero; un fallo no bloquea el borrado del registro
        await asyncio.gather(*(self._remove_blob(storage_path_for_image(image)) for image in images))

        for image in images:
            image_id = image.id
            try:
                self.db.delete(image)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error al eliminar el registro de la imagen {image_id}: {e}")
                continue
            result.deleted_image_ids.append(image_id)

    async def _remove_blob(self, path: str) -> bool:
        try:
            await run_in_threadpool(self.storage.remove, path)
        except StorageError as e:
            logger.error(f"Error al eliminar imagen de storage: {path} - {e}")
            return False
        return True

    def update_positions(self, product_id: str, positions: List[ImagePosition], result: SubmissionResult) -> None:
        """
        Escribe el order_index recibido en cada imagen existente del producto.
        """
        logger.info(
            f"Actualizando order_index de imágenes de {product_id}: "
            f"{[(p.image_id, p.order_index) for p in positions]}"
        )

        for position in positions:
            try:
                updated = (
                    self.db.query(Image)
                    .filter(Image.id == position.image_id, Image.product_id == product_id)
                    .update({Image.order_index: position.order_index}, synchronize_session=False)
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error al actualizar order_index de la imagen {position.image_id}: {e}")
                result.failed_positions.append(position.image_id)
                continue

            if not updated:
                logger.error(f"Imagen {position.image_id} no encontrada en el producto {product_id}")
                result.failed_positions.append(position.image_id)

        if result.failed_positions:
            logger.error(f"Errores al actualizar order_index: {result.failed_positions}")
        else:
            logger.info("Order_index actualizado para todas las imágenes")
