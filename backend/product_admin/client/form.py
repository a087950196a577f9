"""Cliente HTTP del formulario de productos."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from product_admin.client.editor import ImageOrderEditor
from product_admin.client.order_model import PersistedImage, SerializedOrder

logger = logging.getLogger(__name__)

FormFields = List[Tuple[str, str]]
FormFiles = List[Tuple[str, Tuple[str, bytes, str]]]


@dataclass
class ProductFormData:
    name: str = ""
    price: Union[str, Decimal, float] = ""
    description: str = ""
    product_id: Optional[str] = None

    @classmethod
    def from_product(cls, product: Dict[str, Any]) -> "ProductFormData":
        return cls(
            name=product.get("name", ""),
            price=product.get("price", ""),
            description=product.get("description") or "",
            product_id=product.get("id"),
        )


@dataclass
class SubmissionOutcome:
    status_code: int
    success: Optional[str] = None
    product_id: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.success is not None


def build_form_payload(
    form: ProductFormData,
    serialized: SerializedOrder,
    deleted_image_ids: Optional[List[str]] = None,
) -> Tuple[FormFields, FormFiles]:
    """
    Arma los campos y archivos del envío multipart a partir del orden serializado.
    """
    fields: FormFields = []
    if form.product_id:
        fields.append(("productId", form.product_id))
    fields.append(("name", form.name))
    fields.append(("description", form.description or ""))
    fields.append(("price", str(form.price)))

    for index, position in enumerate(serialized.existing):
        fields.append((f"images[{index}].id", position.image_id))
        fields.append((f"images[{index}].order_index", str(position.order_index)))

    files: FormFiles = []
    for index, position in enumerate(serialized.staged):
        fields.append((f"newImages[{index}].order_index", str(position.order_index)))
        files.append(("images", (position.file.filename, position.file.data, position.file.content_type)))

    if deleted_image_ids:
        fields.append(("deletedImages", json.dumps(list(deleted_image_ids))))

    return fields, files


class ProductAdminClient:
    """Consulta y envía productos contra la API de administración."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def list_products(
        self,
        q: str = "",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page}
        if q:
            params["q"] = q
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        if limit:
            params["limit"] = limit

        response = self.session.get(self._url("/products/"), params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_product(self, product_id: str) -> Dict[str, Any]:
        response = self.session.get(self._url(f"/products/{product_id}"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def open_editor(self, product_id: str) -> Tuple[ProductFormData, ImageOrderEditor]:
        """Carga un producto y prepara el editor con sus imágenes."""
        product = self.get_product(product_id)
        images = [PersistedImage.from_dict(image) for image in product.get("images") or []]
        return ProductFormData.from_product(product), ImageOrderEditor(images)

    def submit(self, form: ProductFormData, editor: ImageOrderEditor) -> SubmissionOutcome:
        fields, files = build_form_payload(form, editor.serialize(), editor.deleted_image_ids)
        logger.debug(f"Enviando producto {form.product_id or '(nuevo)'}: {len(files)} imágenes nuevas")

        response = self.session.post(
            self._url("/products/"),
            data=fields,
            files=files or None,
            timeout=self.timeout,
        )

        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise

        outcome = SubmissionOutcome(
            status_code=response.status_code,
            success=body.get("success"),
            product_id=body.get("productId"),
            errors=body.get("errors") or {},
        )
        if outcome.ok and outcome.product_id:
            form.product_id = outcome.product_id
        return outcome
