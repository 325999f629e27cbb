from __future__ import annotations
import csv, json, time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..core.heap import MemSimResult, WorstFitAllocator, simulate
from .metrics import full_metrics_summary, heap_snapshot_metrics, summarize
from .requests import Request
from .scenario_definitions import get_config
from .workload_generators import generate_workload

PartitionSnapshot = List[Tuple[int, int, int]]

CSV_KEY_ORDER = [
    "page_size", "n_pages_requested", "max_free_partition_size", "max_free_partition_address",
    "avg_access_time_ms", "space_usage_pct", "fragmentation_external_pct",
    "throughput_ops_per_sec", "hit_ratio_pct", "cpu_usage_pct", "peak_heap_size",
    "growth_count", "split_count", "merge_count", "elapsed_ms_total", "ops_count",
]


def build_config(
    scenario: str | None,
    scenarios_path: str | None,
    overrides: Dict[str, Any] | None,
) -> Dict[str, Any]:
    return get_config(scenario, scenarios_path, overrides)


def _make_event_handler(collector: Dict[str, Any]) -> Callable[..., None]:
    def on_event(event_type: str, **payload: Any) -> None:
        collector["last_event"] = (event_type, payload)
        if event_type == "allocate:split":
            collector["splits"] = collector.get("splits", 0) + 1
        elif event_type == "allocate:grow":
            collector["grows"] = collector.get("grows", 0) + 1
            collector["pages"] = collector.get("pages", 0) + int(payload.get("pages", 0))
        elif event_type == "deallocate":
            collector["merges"] = collector.get("merges", 0) + int(payload.get("merges", 0))
            collector["released"] = collector.get("released", 0) + int(payload.get("released", 0))
    return on_event


def _resolve_page_size(
    scenario: str | None,
    scenarios_path: str | None,
    overrides: Dict[str, Any],
) -> int:
    if "page_size" in overrides:
        return overrides["page_size"]
    if scenario:
        return build_config(scenario, scenarios_path, overrides)["page_size"]
    raise ValueError("Para reproducir pedidos explícitos se necesita 'page_size' (override o escenario).")


def replay(page_size: int, requests: Iterable[Tuple[int, int]]) -> Tuple[MemSimResult, float]:
    """Reproduce los pedidos sin instrumentación; devuelve (resultado, segundos)."""
    t0 = time.perf_counter()
    result = simulate(page_size, requests)
    return result, time.perf_counter() - t0


def run_simulation(
    scenario: str | None,
    scenarios_path: str | None,
    seed: int | None,
    overrides: Dict[str, Any] | None,
    out: str | None = None,
    requests: Optional[List[Request]] = None,
    on_heap_update: Optional[Callable[[PartitionSnapshot], None]] = None,
    ui_slowdown_ms: Optional[int] = None,
) -> Tuple[Dict[str, Any], PartitionSnapshot]:
    """
    Ejecuta una corrida instrumentada del asignador.

    - Si `requests` viene, se reproducen tal cual (page_size sale de overrides o del
      escenario). Si no, se generan con el escenario + seed.
    - Cada pedido se cronometra y se registra una fila de resultados y una traza.
    - Un pedido rechazado por validación cuenta como miss; la corrida sigue.

    Devuelve (summary, particiones_finales).
    """
    overrides = dict(overrides or {})

    if requests is None:
        cfg = build_config(scenario, scenarios_path, overrides)
        page_size = cfg["page_size"]
        ops: List[Request] = generate_workload(cfg, seed=seed)
    else:
        page_size = _resolve_page_size(scenario, scenarios_path, overrides)
        ops = [Request(int(r[0]), int(r[1])) for r in requests]

    sleep_duration_s = 0.0
    if ui_slowdown_ms and ui_slowdown_ms > 0:
        sleep_duration_s = ui_slowdown_ms / 1000.0

    event_acc: Dict[str, Any] = {}
    alloc = WorstFitAllocator(page_size, on_event=_make_event_handler(event_acc))

    results: List[Dict[str, Any]] = []
    op_traces: List[Dict[str, Any]] = []
    tags_manifest: Dict[int, Dict[str, Any]] = {}

    sim_start_wall = time.perf_counter()
    sim_start_cpu = time.process_time()

    for op_idx, req in enumerate(ops):
        event_acc.clear()
        op_name = "free" if req.is_free else "allocate"
        t0_wall = time.perf_counter()
        t0_cpu = time.process_time()
        hit, miss = 1, 0

        try:
            if req.is_free:
                alloc.deallocate(req.target_tag)
            else:
                alloc.allocate(req.tag, req.size)
        except (ValueError, TypeError):
            hit, miss = 0, 1

        op_elapsed_ms = (time.perf_counter() - t0_wall) * 1000.0
        op_cpu_s = time.process_time() - t0_cpu

        if hit:
            tag = req.target_tag
            if req.is_free:
                if tag in tags_manifest and tags_manifest[tag]["alive"]:
                    tags_manifest[tag]["alive"] = False
                    tags_manifest[tag]["freed_at"] = op_idx
            else:
                rec = tags_manifest.get(tag)
                if rec is None or not rec["alive"]:
                    rec = {
                        "tag": tag,
                        "allocations": 0,
                        "bytes": 0,
                        "created_at": op_idx,
                        "freed_at": None,
                        "alive": True,
                    }
                    tags_manifest[tag] = rec
                rec["allocations"] += 1
                rec["bytes"] += req.size

        snap = heap_snapshot_metrics(alloc)
        stats = alloc.stats()
        t_wall_since_start = time.perf_counter() - sim_start_wall

        if on_heap_update:
            on_heap_update(alloc.partitions())
        if sleep_duration_s > 0:
            time.sleep(sleep_duration_s)

        results.append({
            "operation": op_name,
            "access_time_ms": float(op_elapsed_ms),
            "elapsed_time_s": float(op_elapsed_ms / 1000.0),
            "cpu_time": float(op_cpu_s),
            "hits": hit, "misses": miss,
            "splits": int(event_acc.get("splits", 0)),
            "grows": int(event_acc.get("grows", 0)),
            "merges": int(event_acc.get("merges", 0)),
            **snap,
        })

        op_traces.append({
            "op_index": op_idx,
            "operation": op_name,
            "tag": req.target_tag,
            "size": req.size,
            "access_time_ms": float(op_elapsed_ms),
            "t_wall_from_start_s": float(t_wall_since_start),
            "heap_size": snap["heap_size"],
            "largest_free": snap["largest_free"],
            "largest_free_address": stats.max_free_partition_address,
            "pages_requested": stats.n_pages_requested,
            "external_frag_pct": float(snap["external_frag"] * 100.0),
            "space_usage_pct": snap["space_usage_pct"],
            "merges": int(event_acc.get("merges", 0)),
        })

    total_elapsed_s = time.perf_counter() - sim_start_wall
    total_cpu_s = time.process_time() - sim_start_cpu

    final = alloc.stats()
    summary: Dict[str, Any] = full_metrics_summary(results)
    summary.update(final._asdict())
    summary["page_size"] = page_size
    summary["elapsed_ms_total"] = round(total_elapsed_s * 1000.0, 3)
    summary["cpu_time_total_s"] = round(total_cpu_s, 6)
    summary["ops_count"] = len(results)
    summary["_scenario"] = scenario or "requests-only"
    summary["_seed"] = seed
    summary["_basic"] = summarize(results)
    summary["tags_manifest"] = sorted(tags_manifest.values(), key=lambda r: r["tag"])
    summary["op_traces"] = op_traces

    if out:
        export_summary(summary, out)

    return summary, alloc.partitions()


def export_summary(summary: Dict[str, Any], out: str | Path) -> Path:
    """Escribe el resumen: .csv → una fila con CSV_KEY_ORDER; cualquier otra extensión → JSON."""
    p = Path(out)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() == ".csv":
        with p.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["scenario"] + CSV_KEY_ORDER)
            writer.writerow([summary.get("_scenario", "")] + [summary.get(k, "") for k in CSV_KEY_ORDER])
    else:
        with p.open("w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
    return p
