import unittest
from datetime import datetime, timedelta
from decimal import Decimal

from helpers import ApiTestCase

from product_admin.core.config import settings


class ProductQueriesAPITest(ApiTestCase):
    """Pruebas del listado y detalle de productos"""

    def create_catalog(self, count: int):
        base = datetime(2026, 3, 1, 12, 0, 0)
        return [
            self.create_product(name=f"Producto {n:02d}", created_at=base + timedelta(hours=n))
            for n in range(count)
        ]

    def test_01_list_newest_first(self):
        """Listado paginado, más recientes primero"""
        ids = self.create_catalog(3)

        response = self.client.get(f"{self.BASE_URL}/products/")
        self.print_response(response, "Listar Productos")

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual(list(reversed(ids)), [product["id"] for product in body["products"]])
        self.assertEqual(3, body["total"])
        self.assertEqual(1, body["page"])
        self.assertEqual(settings.PRODUCTS_PAGE_SIZE, body["limit"])
        self.assertEqual(1, body["total_pages"])
        self.assertEqual(Decimal("10.00"), Decimal(str(body["products"][0]["price"])))

    def test_02_pagination(self):
        self.create_catalog(12)

        response = self.client.get(f"{self.BASE_URL}/products/", params={"page": 3, "limit": 5})

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual(["Producto 01", "Producto 00"], [product["name"] for product in body["products"]])
        self.assertEqual(12, body["total"])
        self.assertEqual(3, body["total_pages"])

    def test_03_page_beyond_total_is_rejected(self):
        """Una página mayor al total devuelve 400"""
        self.create_catalog(3)

        response = self.client.get(f"{self.BASE_URL}/products/", params={"page": 2, "limit": 5})
        self.print_response(response, "Página Inválida")

        self.assertEqual(400, response.status_code)
        self.assertEqual("Página inválida: 2 de 1", response.json()["detail"])

    def test_04_empty_catalog_any_page(self):
        response = self.client.get(f"{self.BASE_URL}/products/", params={"page": 4})

        self.assertEqual(200, response.status_code)
        self.assertEqual([], response.json()["products"])
        self.assertEqual(0, response.json()["total_pages"])

    def test_05_invalid_query_parameters(self):
        for params in [{"page": 0}, {"limit": settings.PRODUCTS_MAX_PAGE_SIZE + 1}, {"startDate": "ayer"}]:
            response = self.client.get(f"{self.BASE_URL}/products/", params=params)
            self.assertEqual(422, response.status_code, params)

    def test_06_search_by_name_or_description(self):
        """La búsqueda ignora mayúsculas y revisa nombre y descripción"""
        lamp = self.create_product(name="Desk Lamp", created_at=datetime(2026, 3, 1))
        shade = self.create_product(name="Pantalla", description="Repuesto para LAMP de pie", created_at=datetime(2026, 3, 2))
        self.create_product(name="Silla", description="Madera", created_at=datetime(2026, 3, 3))

        response = self.client.get(f"{self.BASE_URL}/products/", params={"q": "  lamp "})

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual([shade, lamp], [product["id"] for product in body["products"]])
        self.assertEqual("lamp", body["query"])

    def test_07_date_range_includes_whole_end_day(self):
        """El rango de fechas incluye el día final completo"""
        self.create_product(name="Antes", created_at=datetime(2026, 1, 5, 10, 0))
        inside = self.create_product(name="Dentro", created_at=datetime(2026, 1, 10, 23, 30))
        self.create_product(name="Después", created_at=datetime(2026, 1, 11, 0, 0))

        response = self.client.get(
            f"{self.BASE_URL}/products/",
            params={"startDate": "2026-01-06", "endDate": "2026-01-10"},
        )

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual([inside], [product["id"] for product in body["products"]])
        self.assertEqual("2026-01-06", body["start_date"])
        self.assertEqual("2026-01-10", body["end_date"])

    def test_08_detail_images_sorted(self):
        """El detalle devuelve las imágenes ordenadas por order_index"""
        product_id = self.create_product(name="Desk Lamp", description="Luz")
        self.create_image(product_id, "img-3", 3)
        self.create_image(product_id, "img-1", 1)
        self.create_image(product_id, "img-2", 2)

        response = self.client.get(f"{self.BASE_URL}/products/{product_id}")
        self.print_response(response, "Detalle de Producto")

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("Desk Lamp", body["name"])
        self.assertEqual("Luz", body["description"])
        self.assertEqual(["img-1", "img-2", "img-3"], [image["id"] for image in body["images"]])
        self.assertEqual([1, 2, 3], [image["order_index"] for image in body["images"]])
        self.assertTrue(body["images"][0]["url"].endswith(f"products/{product_id}/uuid-img-1.png"))

    def test_09_detail_not_found(self):
        response = self.client.get(f"{self.BASE_URL}/products/no-existe")

        self.assertEqual(404, response.status_code)
        self.assertEqual("Producto no encontrado", response.json()["detail"])


if __name__ == "__main__":
    unittest.main()
