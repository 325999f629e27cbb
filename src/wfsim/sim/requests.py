from __future__ import annotations
import csv
import json
from pathlib import Path
from typing import Any, Iterable, List, NamedTuple


class Request(NamedTuple):
    """Pedido del simulador: tag >= 0 reserva `size` bytes, tag < 0 libera `-tag`."""
    tag: int
    size: int = 0

    @property
    def is_free(self) -> bool:
        return self.tag < 0

    @property
    def target_tag(self) -> int:
        return -self.tag if self.tag < 0 else self.tag


def _to_request(tag: Any, size: Any, where: str) -> Request:
    try:
        t = int(tag)
        s = int(size) if size not in (None, "") else 0
    except (TypeError, ValueError):
        raise ValueError(f"{where}: tag y size deben ser enteros (recibido {tag!r}, {size!r})")
    if t >= 0 and s <= 0:
        raise ValueError(f"{where}: un pedido de reserva necesita size > 0 (recibido {s})")
    return Request(t, s)


def parse_requests(lines: Iterable[str]) -> List[Request]:
    """
    Formato de texto: un pedido por línea, "tag size".
      - Un pedido de liberación puede omitir size ("-3" equivale a "-3 0").
      - Se ignoran líneas vacías y comentarios que empiezan con '#'.
    Lanza ValueError indicando el número de línea si una línea es inválida.
    """
    out: List[Request] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()
        if len(parts) > 2:
            raise ValueError(f"Línea {lineno}: se esperaban 'tag size' (recibido {raw.strip()!r})")
        size = parts[1] if len(parts) == 2 else None
        if size is None and not parts[0].startswith("-"):
            raise ValueError(f"Línea {lineno}: falta size en el pedido de reserva")
        out.append(_to_request(parts[0], size, f"Línea {lineno}"))
    return out


def load_requests(path: str | Path) -> List[Request]:
    """
    Carga pedidos desde archivo según su extensión:
      - .json: lista de {"tag": int, "size": int} o de pares [tag, size]
      - .csv : cabeceras 'tag' y 'size'
      - otro : formato de texto (ver parse_requests)
    """
    p = Path(path)
    suffix = p.suffix.lower()
    with p.open("r", encoding="utf-8", newline="" if suffix == ".csv" else None) as f:
        if suffix == ".json":
            data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("El JSON de pedidos debe ser una *lista*.")
            out: List[Request] = []
            for i, item in enumerate(data):
                if isinstance(item, dict):
                    out.append(_to_request(item.get("tag"), item.get("size"), f"item {i}"))
                elif isinstance(item, (list, tuple)) and len(item) in (1, 2):
                    out.append(_to_request(item[0], item[1] if len(item) == 2 else None, f"item {i}"))
                else:
                    raise ValueError(f"item {i}: debe ser objeto {{tag, size}} o par [tag, size]")
            return out
        if suffix == ".csv":
            reader = csv.DictReader(f)
            if not reader.fieldnames or "tag" not in reader.fieldnames:
                raise ValueError("El CSV de pedidos necesita la cabecera 'tag' (y 'size').")
            return [
                _to_request(row.get("tag"), row.get("size"), f"fila {i + 1}")
                for i, row in enumerate(reader)
            ]
        return parse_requests(f)


def dump_requests(requests: Iterable[Request], path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        for r in requests:
            if r.is_free:
                f.write(f"{r.tag}\n")
            else:
                f.write(f"{r.tag} {r.size}\n")
