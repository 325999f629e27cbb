from __future__ import annotations
from typing import Any, Dict, List
import statistics

from ..core.heap import WorstFitAllocator


def heap_snapshot_metrics(alloc: WorstFitAllocator) -> Dict[str, float]:
    """
    Estado instantáneo del heap:
      - heap_size, used_bytes, free_bytes (bytes)
      - free_partitions, largest_free
      - external_frag: 1 - (mayor libre / total libre); 0 si no hay bytes libres
      - space_usage_pct
    """
    total = alloc.total_size
    free = alloc.free_bytes()
    used = alloc.used_bytes()
    largest = alloc.stats().max_free_partition_size
    ext_frag = 0.0 if free == 0 else 1.0 - (largest / free)
    return {
        "heap_size": float(total),
        "used_bytes": float(used),
        "free_bytes": float(free),
        "free_partitions": float(alloc.free_partition_count()),
        "largest_free": float(largest),
        "external_frag": float(ext_frag),
        "space_usage_pct": float((used / total) * 100 if total > 0 else 0.0),
    }


def summarize(results: List[Dict[str, Any]]) -> Dict[str, float]:
    """
    Calcula promedios básicos (versión resumida).
    """
    if not results:
        return {
            "avg_access_time_ms": 0.0,
            "space_usage_pct": 0.0,
            "fragmentation_external_pct": 0.0,
        }

    n = len(results)
    avg_access_time = sum(r.get("access_time_ms", 0) for r in results) / n
    avg_usage = sum(r.get("space_usage_pct", 0) for r in results) / n
    avg_external_frag = sum(r.get("external_frag", 0) * 100 for r in results) / n

    return {
        "avg_access_time_ms": round(avg_access_time, 3),
        "space_usage_pct": round(avg_usage, 2),
        "fragmentation_external_pct": round(avg_external_frag, 2),
    }


def full_metrics_summary(results: List[Dict[str, Any]]) -> Dict[str, float]:
    """
    Métricas completas de una corrida:
      - Tiempo promedio por pedido y throughput
      - Uso de espacio y fragmentación externa promedio
      - Hit ratio (pedidos aceptados / total)
      - Uso de CPU
      - Pico de heap, crecimientos, splits y fusiones
      - Dispersión de tiempos (desvío relativo)
    """
    if not results:
        return {
            "avg_access_time_ms": 0.0,
            "space_usage_pct": 0.0,
            "fragmentation_external_pct": 0.0,
            "throughput_ops_per_sec": 0.0,
            "hit_ratio_pct": 0.0,
            "cpu_usage_pct": 0.0,
            "peak_heap_size": 0.0,
            "growth_count": 0,
            "split_count": 0,
            "merge_count": 0,
            "latency_spread_pct": 0.0,
        }

    base = summarize(results)
    n = len(results)

    total_time_s = sum(r.get("elapsed_time_s", 0) for r in results)
    throughput = n / total_time_s if total_time_s > 0 else 0.0

    total_hits = sum(r.get("hits", 0) for r in results)
    total_misses = sum(r.get("misses", 0) for r in results)
    hit_ratio = (total_hits / (total_hits + total_misses)) * 100 if (total_hits + total_misses) > 0 else 0.0

    cpu_time = sum(r.get("cpu_time", 0.0) for r in results)
    total_elapsed = total_time_s if total_time_s > 0 else 1.0
    cpu_usage_pct = (cpu_time / total_elapsed) * 100

    access_times = [r.get("access_time_ms", 0) for r in results]
    spread = 0.0
    mean_access = sum(access_times) / len(access_times)
    if len(access_times) > 1 and mean_access > 0:
        spread = statistics.pstdev(access_times) / mean_access * 100

    return {
        **base,
        "throughput_ops_per_sec": round(throughput, 3),
        "hit_ratio_pct": round(hit_ratio, 2),
        "cpu_usage_pct": round(cpu_usage_pct, 2),
        "peak_heap_size": max(r.get("heap_size", 0) for r in results),
        "growth_count": int(sum(r.get("grows", 0) for r in results)),
        "split_count": int(sum(r.get("splits", 0) for r in results)),
        "merge_count": int(sum(r.get("merges", 0) for r in results)),
        "latency_spread_pct": round(spread, 2),
    }
