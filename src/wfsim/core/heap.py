from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from .free_index import FreeIndex
from .partition import FREE_TAG, Partition, PartitionArena, PartitionRef

MAX_PAGE_SIZE = 1_000_000


class MemSimResult(NamedTuple):
    max_free_partition_address: int = 0
    max_free_partition_size: int = 0
    n_pages_requested: int = 0


class WorstFitAllocator:
    """
    Asignador de particiones variables con política worst-fit y crecimiento por páginas.

    Estado:
      - `arena`     : secuencia de particiones ordenada por dirección (slots estables).
      - `free_index`: particiones libres ordenadas por (tamaño desc, dirección asc).
      - `tagged`    : {tag: [PartitionRef, ...]} en orden de inserción.
      - `pages_requested`: total acumulado de páginas pedidas al "sistema".

    El heap arranca con una única partición libre de tamaño 0 en la dirección 0.

    Instrumentación:
      - `on_event(event_type, **payload)` opcional, igual que en las estrategias del
        simulador: "allocate:split", "allocate:grow", "deallocate".

    Concurrencia: las instancias NO son seguras para mutación concurrente. El arena,
    el índice de libres y el de tags se actualizan juntos y no son consistentes entre
    sí a mitad de una operación; usar un lock externo si se comparte entre hilos.
    """

    def __init__(
        self,
        page_size: int,
        *,
        on_event: Optional[Callable[..., None]] = None,
    ) -> None:
        if isinstance(page_size, bool) or not isinstance(page_size, int):
            raise TypeError("page_size debe ser int")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValueError(f"page_size debe estar en [1, {MAX_PAGE_SIZE}] (recibido {page_size})")

        self.page_size: int = page_size
        self.pages_requested: int = 0
        self.arena = PartitionArena()
        self.free_index = FreeIndex()
        self.tagged: Dict[int, List[PartitionRef]] = {}
        self.on_event = on_event

        sentinel = self.arena.append(FREE_TAG, 0, 0)
        self.free_index.add(sentinel, 0, 0)

    # ------------------------------------------------------------------
    # Asignación
    # ------------------------------------------------------------------
    def allocate(self, tag: int, requested_size: int) -> None:
        """
        Reserva `requested_size` bytes bajo `tag`.

        Usa la partición libre más grande (desempate por menor dirección). Si no
        alcanza, crece el heap con el mínimo número de páginas, aprovechando los
        bytes de la última partición si está libre.

        Reusar un tag vivo está permitido: el tag queda asociado a varias particiones.

        Errores (se validan antes de tocar el estado):
          - TypeError si tag o requested_size no son int.
          - ValueError si tag < 0 o requested_size <= 0.
        """
        self._assert_int("tag", tag)
        self._assert_int("requested_size", requested_size)
        if tag < 0:
            raise ValueError(f"tag debe ser >= 0 (recibido {tag})")
        if requested_size <= 0:
            raise ValueError(f"requested_size debe ser > 0 (recibido {requested_size})")

        cand_idx = self.free_index.first()
        candidate = self.arena.at(cand_idx)

        if candidate.size >= requested_size:
            self.free_index.discard(cand_idx)
            new_idx = self.arena.insert_before(cand_idx, tag, requested_size, candidate.address)
            candidate.address += requested_size
            candidate.size -= requested_size
            self.free_index.add(cand_idx, candidate.size, candidate.address)
            self.tagged.setdefault(tag, []).append(self.arena.ref(new_idx))
            self._emit(
                "allocate:split",
                tag=tag,
                size=requested_size,
                address=candidate.address - requested_size,
            )
            return

        self._grow(tag, requested_size)

    def _grow(self, tag: int, requested_size: int) -> None:
        tail_idx = self.arena.tail
        tail = self.arena.at(tail_idx)

        if tail.is_free:
            needed = requested_size - tail.size
        else:
            needed = requested_size
        pages = -(-needed // self.page_size)
        slack = pages * self.page_size - needed

        if tail.is_free:
            self.free_index.discard(tail_idx)
            tail.tag = tag
            tail.size = requested_size
            used_idx = tail_idx
            used = tail
        else:
            used_idx = self.arena.append(tag, requested_size, tail.end)
            used = self.arena.at(used_idx)

        free_idx = self.arena.append(FREE_TAG, slack, used.end)
        self.free_index.add(free_idx, slack, used.end)
        self.tagged.setdefault(tag, []).append(self.arena.ref(used_idx))
        self.pages_requested += pages

        self._emit(
            "allocate:grow",
            tag=tag,
            size=requested_size,
            address=used.address,
            pages=pages,
            slack=slack,
        )

    # ------------------------------------------------------------------
    # Liberación
    # ------------------------------------------------------------------
    def deallocate(self, tag: int) -> None:
        """
        Libera todas las particiones con `tag`, fusionando cada una con sus vecinas
        libres. Un tag desconocido no es error: no hace nada.
        """
        refs = self.tagged.pop(tag, None)
        if not refs:
            return

        merges = 0
        for ref in refs:
            idx = ref.index
            part = self.arena.get(ref)
            part.tag = FREE_TAG
            merges += self._merge_neighbors(idx, part)
            self.free_index.add(idx, part.size, part.address)

        self._emit("deallocate", tag=tag, released=len(refs), merges=merges)

    def _merge_neighbors(self, idx: int, part: Partition) -> int:
        merges = 0
        if part.prev is not None:
            prev_idx = part.prev
            prev = self.arena.at(prev_idx)
            if prev.is_free:
                part.size += prev.size
                part.address = prev.address
                self.free_index.discard(prev_idx)
                self.arena.remove(prev_idx)
                merges += 1
        if part.next is not None:
            next_idx = part.next
            nxt = self.arena.at(next_idx)
            if nxt.is_free:
                part.size += nxt.size
                self.free_index.discard(next_idx)
                self.arena.remove(next_idx)
                merges += 1
        return merges

    # ------------------------------------------------------------------
    # Estadísticas
    # ------------------------------------------------------------------
    def stats(self) -> MemSimResult:
        idx = self.free_index.first()
        if idx is None:
            return MemSimResult(0, 0, self.pages_requested)
        best = self.arena.at(idx)
        return MemSimResult(best.address, best.size, self.pages_requested)

    @property
    def total_size(self) -> int:
        tail = self.arena.at(self.arena.tail)
        return tail.end

    def free_bytes(self) -> int:
        return sum(self.arena.at(i).size for i in self.free_index)

    def used_bytes(self) -> int:
        return self.total_size - self.free_bytes()

    def free_partition_count(self) -> int:
        return len(self.free_index)

    def partitions(self) -> List[Tuple[int, int, int]]:
        """Snapshot [(address, size, tag), ...] en orden de dirección (tag -1 = libre)."""
        return [(p.address, p.size, p.tag) for p in self.arena]

    def tag_partitions(self, tag: int) -> List[Partition]:
        return [self.arena.get(r) for r in self.tagged.get(tag, [])]

    def live_tags(self) -> List[int]:
        return list(self.tagged.keys())

    # ------------------------------------------------------------------
    # Verificación
    # ------------------------------------------------------------------
    def check_invariants(self) -> None:
        """Verifica todos los invariantes estructurales; lanza AssertionError si alguno falla."""
        expected_addr = 0
        prev_free = False
        free_slots = set()
        occupied: Dict[int, int] = {}
        for idx in self.arena.iter_indices():
            p = self.arena.at(idx)
            assert p.alive, f"Slot muerto en la secuencia: {idx}"
            assert p.address == expected_addr, f"Hueco/solape en {p!r}: se esperaba dirección {expected_addr}"
            assert p.size >= 0, f"Tamaño negativo en {p!r}"
            if p.is_free:
                assert not prev_free, f"Dos particiones libres adyacentes en {p!r}"
                free_slots.add(idx)
            else:
                occupied[idx] = p.tag
            prev_free = p.is_free
            expected_addr = p.end

        assert set(self.free_index) == free_slots, "El índice de libres no coincide con las particiones libres"
        for idx in free_slots:
            p = self.arena.at(idx)
            assert self.free_index.by_slot[idx] == (-p.size, p.address, idx), f"Clave desactualizada para {p!r}"

        seen = set()
        for tag, refs in self.tagged.items():
            for ref in refs:
                p = self.arena.get(ref)
                assert p.tag == tag, f"Referencia del tag {tag} apunta a {p!r}"
                seen.add(ref.index)
        assert seen == set(occupied), "El índice de tags no cubre exactamente las particiones ocupadas"

        assert expected_addr % self.page_size == 0, f"Heap de {expected_addr} B no es múltiplo de página"
        assert expected_addr == self.pages_requested * self.page_size, "Tamaño de heap != páginas pedidas"

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------
    @staticmethod
    def _assert_int(name: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} debe ser int")

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self.on_event is not None:
            try:
                self.on_event(event_type, **payload)
            except TypeError:
                self.on_event(event_type)


def simulate(page_size: int, requests: Iterable[Tuple[int, int]]) -> MemSimResult:
    """
    Reproduce una secuencia de pedidos (tag, size) y devuelve las estadísticas finales.
    tag >= 0 → allocate(tag, size); tag < 0 → deallocate(-tag).
    """
    alloc = WorstFitAllocator(page_size)
    for tag, size in requests:
        if tag < 0:
            alloc.deallocate(-tag)
        else:
            alloc.allocate(tag, size)
    return alloc.stats()
