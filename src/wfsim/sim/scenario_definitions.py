from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Tuple

from ..core.heap import MAX_PAGE_SIZE


DEFAULTS: Dict[str, Dict[str, Any]] = {
    "small-pages": {
        "description": "Muchos pedidos pequeños sobre páginas de 64 B, 20% de liberaciones",
        "page_size": 64,
        "n_requests": 2000,
        "small_size_range": [1, 48],
        "large_size_range": [64, 512],
        "large_ratio": 0.1,
        "free_rate": 0.2,
        "tag_reuse_rate": 0.0,
    },
    "large-pages": {
        "description": "Mezcla de tamaños sobre páginas de 4096 B",
        "page_size": 4096,
        "n_requests": 1500,
        "small_size_range": [16, 1024],
        "large_size_range": [4096, 65536],
        "large_ratio": 0.25,
        "free_rate": 0.3,
        "tag_reuse_rate": 0.05,
    },
    "churn-intensive": {
        "description": "Reserva/liberación intensiva para inducir fragmentación",
        "page_size": 1024,
        "n_requests": 3000,
        "small_size_range": [8, 256],
        "large_size_range": [1024, 8192],
        "large_ratio": 0.15,
        "free_rate": 0.45,
        "tag_reuse_rate": 0.1,
    },
}


_REQUIRED_KEYS = {
    "description": str,
    "page_size": int,
    "n_requests": int,
    "small_size_range": (list, tuple),
    "large_size_range": (list, tuple),
    "large_ratio": (int, float),
    "free_rate": (int, float),
    "tag_reuse_rate": (int, float),
}


def load_from_json(path: str | Path) -> Dict[str, Dict[str, Any]]:
    """
    Carga escenarios desde un JSON opcional. El archivo debe mapear:
      { "<scenario_name>": {<config>}, ... }
    Si el archivo no existe, retorna {}.
    """
    p = Path(path)
    if not p.exists():
        return {}
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("El JSON de escenarios debe ser un objeto {nombre: config}.")
    return data


def _as_range_pair(value: Any, field: str) -> Tuple[int, int]:
    """
    Normaliza un rango [min, max] o (min, max) a (int, int). Valida 1 <= min <= max.
    """
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{field} debe ser una lista/tupla [min, max].")
    a, b = value
    if not (isinstance(a, int) and isinstance(b, int)):
        raise ValueError(f"{field} debe contener enteros.")
    if a < 1 or b < 1 or a > b:
        raise ValueError(f"{field} inválido: se requiere 1 <= min <= max (recibido {value}).")
    return int(a), int(b)


def _validate_rate(name: str, cfg: Dict[str, Any], key: str) -> None:
    r = float(cfg[key])
    if r < 0.0 or r > 1.0:
        raise ValueError(f"[{name}] '{key}' debe estar en [0, 1] (recibido {r}).")


def _validate_schema(name: str, cfg: Dict[str, Any]) -> None:
    """
    Valida tipos y rangos básicos. Lanza ValueError con mensajes claros.
    """
    for k, typ in _REQUIRED_KEYS.items():
        if k not in cfg:
            raise ValueError(f"[{name}] Falta clave requerida: '{k}'")
        if isinstance(cfg[k], bool) or not isinstance(cfg[k], typ):
            raise ValueError(f"[{name}] Tipo inválido para '{k}': esperado {typ}, recibido {type(cfg[k])}")

    if cfg["page_size"] < 1 or cfg["page_size"] > MAX_PAGE_SIZE:
        raise ValueError(f"[{name}] 'page_size' debe estar en [1, {MAX_PAGE_SIZE}]")
    if cfg["n_requests"] < 0:
        raise ValueError(f"[{name}] 'n_requests' debe ser >= 0")

    _as_range_pair(cfg["small_size_range"], "small_size_range")
    _as_range_pair(cfg["large_size_range"], "large_size_range")

    for key in ("large_ratio", "free_rate", "tag_reuse_rate"):
        _validate_rate(name, cfg, key)


def _normalize_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    norm = dict(cfg)
    norm["small_size_range"] = _as_range_pair(cfg["small_size_range"], "small_size_range")
    norm["large_size_range"] = _as_range_pair(cfg["large_size_range"], "large_size_range")
    for key in ("large_ratio", "free_rate", "tag_reuse_rate"):
        norm[key] = float(cfg[key])
    return norm


def available_scenarios(extra_path: str | Path | None = None) -> Dict[str, str]:
    """
    Devuelve {nombre: descripción} de escenarios disponibles,
    combinando DEFAULTS con los definidos en extra_path (si existe).
    """
    combined: Dict[str, Dict[str, Any]] = dict(DEFAULTS)
    if extra_path:
        combined.update(load_from_json(extra_path))
    return {k: v.get("description", "") for k, v in combined.items()}


def get_config(
    scenario: str | None,
    scenarios_path: str | Path | None = None,
    overrides: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    """
    Resuelve la configuración final a usar por el runner:
      1) Parte del escenario elegido desde DEFAULTS + JSON externo (si hay).
      2) Aplica overrides (si vienen).
      3) Valida y normaliza (rangos, tasas, límites de página).
    Lanza KeyError si no existe el escenario indicado.
    Lanza ValueError si hay inconsistencias de esquema o valores.
    """
    combined: Dict[str, Dict[str, Any]] = dict(DEFAULTS)
    if scenarios_path:
        combined.update(load_from_json(scenarios_path))

    cfg: Dict[str, Any] = {}
    if scenario:
        if scenario not in combined:
            raise KeyError(f"Escenario '{scenario}' no existe")
        cfg.update(combined[scenario])

    if overrides:
        cfg.update(overrides)

    if not cfg:
        raise ValueError("No se proporcionó escenario ni overrides con configuración.")

    _validate_schema(scenario or "<overrides>", cfg)
    return _normalize_config(cfg)
