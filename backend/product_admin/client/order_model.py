"""Orden de las imágenes en el editor de producto.

El editor muestra en una sola lista las imágenes ya guardadas y las que el
usuario acaba de seleccionar. Cada entrada es una ``ExistingEntry`` o una
``StagedEntry`` y lleva su posición explícita en ``order_index``.

Las funciones de este módulo son transiciones puras: reciben un ``ImageOrder``
y devuelven uno nuevo. Toda transición renumera la lista completa, de modo que
las posiciones siempre son exactamente 1..N en el orden mostrado.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Literal, Optional, Sequence, Tuple, Union

EXISTING = "existing"
STAGED = "staged"


@dataclass(frozen=True)
class StagedFile:
    """Archivo seleccionado localmente que todavía no se ha subido."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PersistedImage:
    """Imagen tal como la devuelve el detalle del producto."""

    id: str
    url: str
    order_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PersistedImage":
        return cls(id=str(data["id"]), url=data.get("url", ""), order_index=data.get("order_index"))


@dataclass(frozen=True)
class ExistingEntry:
    image_id: str
    url: str
    order_index: int
    kind: Literal["existing"] = EXISTING

    @property
    def key(self) -> str:
        return self.image_id


@dataclass(frozen=True)
class StagedEntry:
    temp_id: str
    file: StagedFile
    preview: str
    order_index: int
    kind: Literal["staged"] = STAGED

    @property
    def key(self) -> str:
        return self.temp_id


OrderedEntry = Union[ExistingEntry, StagedEntry]


@dataclass(frozen=True)
class ExistingPosition:
    image_id: str
    order_index: int


@dataclass(frozen=True)
class StagedPosition:
    file: StagedFile
    order_index: int


@dataclass(frozen=True)
class SerializedOrder:
    """Lo que el editor envía: posiciones de las existentes y archivos nuevos con su posición."""

    existing: Tuple[ExistingPosition, ...] = ()
    staged: Tuple[StagedPosition, ...] = ()


@dataclass(frozen=True)
class ImageOrder:
    entries: Tuple[OrderedEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[OrderedEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> OrderedEntry:
        return self.entries[index]

    @property
    def positions(self) -> Tuple[int, ...]:
        return tuple(entry.order_index for entry in self.entries)

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(entry.key for entry in self.entries)

    def index_of(self, key: str) -> Optional[int]:
        for index, entry in enumerate(self.entries):
            if entry.key == key:
                return index
        return None

    def staged(self) -> Tuple[StagedEntry, ...]:
        return tuple(entry for entry in self.entries if isinstance(entry, StagedEntry))


def renumber(entries: Iterable[OrderedEntry]) -> ImageOrder:
    """Asigna order_index = 1..N según la posición actual en la lista."""
    return ImageOrder(tuple(
        entry if entry.order_index == position else replace(entry, order_index=position)
        for position, entry in enumerate(entries, start=1)
    ))


def from_persisted(images: Iterable[PersistedImage]) -> ImageOrder:
    """
    Construye el orden inicial a partir de las imágenes guardadas.

    Se ordena por order_index ascendente; las imágenes sin posición van al
    final conservando su orden relativo.
    """
    ordered = sorted(
        images,
        key=lambda image: (image.order_index is None, image.order_index or 0),
    )
    return renumber(
        ExistingEntry(image_id=image.id, url=image.url, order_index=image.order_index or 0)
        for image in ordered
    )


def add_staged(order: ImageOrder, staged: Sequence[StagedEntry]) -> ImageOrder:
    """Agrega las entradas nuevas al final y renumera."""
    keys = set(order.keys)
    for entry in staged:
        if entry.key in keys:
            raise ValueError(f"Id temporal duplicado: {entry.key}")
        keys.add(entry.key)
    return renumber(order.entries + tuple(staged))


def reorder(order: ImageOrder, from_index: int, to_index: Optional[int]) -> ImageOrder:
    """
    Mueve la entrada de ``from_index`` a ``to_index`` (un arrastre).

    Sin destino (arrastre cancelado) el orden no cambia.
    """
    if to_index is None:
        return order

    size = len(order)
    if not 0 <= from_index < size:
        raise IndexError(f"Posición de origen fuera de rango: {from_index}")
    if not 0 <= to_index < size:
        raise IndexError(f"Posición de destino fuera de rango: {to_index}")

    entries = list(order.entries)
    moved = entries.pop(from_index)
    entries.insert(to_index, moved)
    return renumber(entries)


def remove(order: ImageOrder, key: str) -> Tuple[ImageOrder, Optional[OrderedEntry]]:
    """Quita la entrada con ``key`` y renumera. Devuelve también la entrada quitada."""
    index = order.index_of(key)
    if index is None:
        return order, None

    entries = list(order.entries)
    removed = entries.pop(index)
    return renumber(entries), removed


def serialize(order: ImageOrder) -> SerializedOrder:
    existing = []
    staged = []
    for entry in order.entries:
        if isinstance(entry, ExistingEntry):
            existing.append(ExistingPosition(image_id=entry.image_id, order_index=entry.order_index))
        elif isinstance(entry, StagedEntry):
            staged.append(StagedPosition(file=entry.file, order_index=entry.order_index))
        else:
            raise TypeError(f"Tipo de entrada desconocido: {entry!r}")
    return SerializedOrder(existing=tuple(existing), staged=tuple(staged))
