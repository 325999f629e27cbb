from __future__ import annotations
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .requests import Request


def _rand_size(rng: random.Random, rng_pair: Tuple[int, int]) -> int:
    """Devuelve un tamaño en bytes dentro del rango [min, max]."""
    lo, hi = rng_pair
    return rng.randint(lo, hi)


def _pick_existing(rng: random.Random, tags: List[int]) -> int | None:
    """Elige un tag vivo al azar (o None si no hay)."""
    if not tags:
        return None
    return rng.choice(tags)


def _replay_user_requests(
    user_requests: Sequence[Request],
    live_tags: List[int],
) -> Tuple[List[Request], int]:
    """
    Valida los pedidos manuales y devuelve (pedidos, mayor_tag_visto).
    Mantiene `live_tags` al día para que el flujo aleatorio pueda liberarlos.
    """
    ops: List[Request] = []
    max_tag = 0
    for idx, r in enumerate(user_requests):
        if not isinstance(r, tuple) or len(r) != 2:
            raise ValueError(f"user_requests[{idx}] debe ser un par (tag, size)")
        req = Request(int(r[0]), int(r[1]))
        if not req.is_free and req.size <= 0:
            raise ValueError(f"user_requests[{idx}]: 'size' debe ser int > 0")
        max_tag = max(max_tag, req.target_tag)
        if req.is_free:
            while req.target_tag in live_tags:
                live_tags.remove(req.target_tag)
        elif req.tag not in live_tags:
            live_tags.append(req.tag)
        ops.append(req)
    return ops, max_tag


def generate_workload(
    cfg: Dict[str, Any],
    seed: int | None = None,
    *,
    user_requests: Optional[Sequence[Request]] = None,
    respect_user_requests_only: bool = False,
) -> List[Request]:
    """
    Genera una secuencia de pedidos reserva/liberación para el simulador.

    Requisitos del cfg (normalizado por scenario_definitions.get_config):
      - n_requests (int)
      - small_size_range, large_size_range (tuple[min,max]) en bytes
      - large_ratio (0..1): probabilidad de que una reserva sea "grande"
      - free_rate (0..1): probabilidad de liberar un tag vivo en cada paso
      - tag_reuse_rate (0..1): probabilidad de reservar con un tag todavía vivo

    Parámetros:
      - user_requests: pedidos manuales que se emiten al principio, tal cual.
      - respect_user_requests_only: si True, no se genera el flujo aleatorio.

    Los tags nuevos se numeran a partir del mayor tag manual + 1, así nunca
    colisionan con los pedidos manuales.
    """
    rng = random.Random(seed)
    live_tags: List[int] = []
    ops: List[Request] = []
    next_tag = 1

    if user_requests:
        manual, max_tag = _replay_user_requests(user_requests, live_tags)
        ops.extend(manual)
        next_tag = max_tag + 1

    if respect_user_requests_only:
        return ops

    n_ops = int(cfg.get("n_requests", 1000))
    small_rng: Tuple[int, int] = tuple(cfg.get("small_size_range", (1, 64)))
    large_rng: Tuple[int, int] = tuple(cfg.get("large_size_range", (256, 4096)))
    large_ratio = float(cfg.get("large_ratio", 0.2))
    free_rate = float(cfg.get("free_rate", 0.3))
    reuse_rate = float(cfg.get("tag_reuse_rate", 0.0))

    for _ in range(n_ops):
        if live_tags and rng.random() < free_rate:
            victim = _pick_existing(rng, live_tags)
            live_tags.remove(victim)
            ops.append(Request(-victim, 0))
            continue

        size = _rand_size(rng, large_rng if rng.random() < large_ratio else small_rng)

        reused = _pick_existing(rng, live_tags) if rng.random() < reuse_rate else None
        if reused is not None:
            ops.append(Request(reused, size))
            continue

        tag = next_tag
        next_tag += 1
        live_tags.append(tag)
        ops.append(Request(tag, size))

    return ops
