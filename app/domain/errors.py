# app/domain/errors.py


class CatalogError(Exception):
    """Base error for the product catalog engine."""


class CatalogLoadError(CatalogError):
    """The primary product table is missing or unreadable; no snapshot can be built."""
    def __init__(self, path, reason: str = ""):
        self.path = path
        super().__init__(f"Cannot load product table {path}: {reason}" if reason else f"Cannot load product table {path}")


class CatalogNotInitialized(CatalogError):
    """A query arrived before any snapshot was published."""
    def __init__(self, message: str = "Product catalog is not initialized"):
        super().__init__(message)
