class ProductNotFoundError(Exception):
    """Excepción cuando el producto solicitado no existe"""

    def __init__(self, product_id: str):
        super().__init__(f"Producto {product_id} no encontrado")
        self.product_id = product_id


class ProductPersistenceError(Exception):
    """Excepción cuando no se pudo guardar el registro del producto"""
    pass


class StorageError(Exception):
    """Excepción para fallos del servicio de almacenamiento de imágenes"""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class InvalidPageError(Exception):
    """Excepción cuando la página solicitada supera el total de páginas"""

    def __init__(self, page: int, total_pages: int):
        super().__init__("Página inválida")
        self.page = page
        self.total_pages = total_pages
