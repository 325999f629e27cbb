from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional

FREE_TAG = -1


class StalePartitionError(LookupError):
    """Se usó una referencia a un slot ya liberado (o reutilizado)."""


class PartitionRef(NamedTuple):
    """Handle estable a un slot del arena: índice + generación."""
    index: int
    generation: int


@dataclass
class Partition:
    tag: int
    size: int
    address: int
    prev: Optional[int] = None
    next: Optional[int] = None
    generation: int = 0
    alive: bool = True

    @property
    def is_free(self) -> bool:
        return self.tag == FREE_TAG

    @property
    def end(self) -> int:
        return self.address + self.size

    def __repr__(self) -> str:
        estado = "libre" if self.is_free else f"tag={self.tag}"
        return f"Partition({estado}, [{self.address}, {self.end}), size={self.size})"


class PartitionArena:
    """
    Secuencia de particiones ordenada por dirección, guardada en un arena de slots.

    Cada slot se direcciona con un índice entero estable; la secuencia se encadena
    con `prev`/`next` (índices) como una lista doblemente enlazada. Al liberar un
    slot se incrementa su generación, de modo que un `PartitionRef` viejo deja de
    resolverse (StalePartitionError) aunque el índice se reutilice.
    """

    def __init__(self) -> None:
        self._slots: List[Partition] = []
        self._free_slots: List[int] = []
        self.head: Optional[int] = None
        self.tail: Optional[int] = None
        self._count = 0

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def _new_slot(self, tag: int, size: int, address: int) -> int:
        if self._free_slots:
            idx = self._free_slots.pop()
            p = self._slots[idx]
            p.tag, p.size, p.address = tag, size, address
            p.prev = p.next = None
            p.alive = True
        else:
            idx = len(self._slots)
            self._slots.append(Partition(tag, size, address))
        self._count += 1
        return idx

    def ref(self, idx: int) -> PartitionRef:
        return PartitionRef(idx, self._slots[idx].generation)

    def get(self, ref: PartitionRef) -> Partition:
        """Resuelve un handle; falla si el slot fue liberado desde que se tomó."""
        if ref.index < 0 or ref.index >= len(self._slots):
            raise StalePartitionError(f"Slot inexistente: {ref.index}")
        p = self._slots[ref.index]
        if not p.alive or p.generation != ref.generation:
            raise StalePartitionError(
                f"Referencia obsoleta al slot {ref.index} "
                f"(generación {ref.generation}, actual {p.generation})"
            )
        return p

    def at(self, idx: int) -> Partition:
        return self._slots[idx]

    # ------------------------------------------------------------------
    # Secuencia
    # ------------------------------------------------------------------
    def append(self, tag: int, size: int, address: int) -> int:
        idx = self._new_slot(tag, size, address)
        p = self._slots[idx]
        p.prev = self.tail
        if self.tail is None:
            self.head = idx
        else:
            self._slots[self.tail].next = idx
        self.tail = idx
        return idx

    def insert_before(self, anchor: int, tag: int, size: int, address: int) -> int:
        idx = self._new_slot(tag, size, address)
        p = self._slots[idx]
        a = self._slots[anchor]
        p.prev, p.next = a.prev, anchor
        if a.prev is None:
            self.head = idx
        else:
            self._slots[a.prev].next = idx
        a.prev = idx
        return idx

    def remove(self, idx: int) -> None:
        """Desengancha el slot de la secuencia y lo devuelve al pool."""
        p = self._slots[idx]
        if p.prev is None:
            self.head = p.next
        else:
            self._slots[p.prev].next = p.next
        if p.next is None:
            self.tail = p.prev
        else:
            self._slots[p.next].prev = p.prev
        p.prev = p.next = None
        p.alive = False
        p.generation += 1
        self._free_slots.append(idx)
        self._count -= 1

    def iter_indices(self) -> Iterator[int]:
        idx = self.head
        while idx is not None:
            yield idx
            idx = self._slots[idx].next

    def __iter__(self) -> Iterator[Partition]:
        for idx in self.iter_indices():
            yield self._slots[idx]

    def __len__(self) -> int:
        return self._count
