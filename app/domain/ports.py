# app/domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

from app.domain.models import ProductRecord


class TextIndexPort(ABC):
    """Read side of the free-text index; built once, never mutated afterwards."""

    @abstractmethod
    def lookup(self, term: str) -> List[ProductRecord]: ...

    @abstractmethod
    def key_count(self) -> int: ...


class ReferenceResolverPort(ABC):
    """Resolves record ids to display names through the reference tables."""

    @abstractmethod
    def manufacturer_of(self, rec: ProductRecord) -> str: ...

    @abstractmethod
    def brand_of(self, rec: ProductRecord) -> str | None: ...
