from __future__ import annotations
from bisect import bisect_left, insort
from typing import Dict, Iterator, List, Optional, Tuple

# (-size, address, slot): el primer elemento es la partición más grande,
# y a igual tamaño la de menor dirección.
FreeKey = Tuple[int, int, int]


class FreeIndex:
    """
    Orden total sobre las particiones libres por (tamaño desc, dirección asc).

    - `keys`: lista ordenada de claves, mantenida con bisect.
    - `by_slot`: {slot: clave con la que se insertó}, para poder borrar un slot
      aunque la partición ya haya cambiado de tamaño o dirección.
    """

    def __init__(self) -> None:
        self.keys: List[FreeKey] = []
        self.by_slot: Dict[int, FreeKey] = {}

    def add(self, slot: int, size: int, address: int) -> None:
        if slot in self.by_slot:
            raise ValueError(f"El slot {slot} ya está en el índice de libres")
        key = (-size, address, slot)
        insort(self.keys, key)
        self.by_slot[slot] = key

    def discard(self, slot: int) -> None:
        key = self.by_slot.pop(slot, None)
        if key is None:
            return
        i = bisect_left(self.keys, key)
        del self.keys[i]

    def first(self) -> Optional[int]:
        """Slot de la partición libre más grande (o None si no hay libres)."""
        if not self.keys:
            return None
        return self.keys[0][2]

    def largest_size(self) -> int:
        return -self.keys[0][0] if self.keys else 0

    def __contains__(self, slot: int) -> bool:
        return slot in self.by_slot

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[int]:
        return (slot for _, _, slot in self.keys)
