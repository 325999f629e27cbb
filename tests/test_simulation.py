import csv
import json

import pytest

from wfsim.sim.requests import Request
from wfsim.sim.runner import replay, run_simulation
from wfsim.sim.scenario_definitions import DEFAULTS, available_scenarios, get_config, load_from_json
from wfsim.sim.workload_generators import generate_workload


# ----------------------------------------------------------------------
# Escenarios
# ----------------------------------------------------------------------
def test_defaults_are_valid():
    for name in DEFAULTS:
        cfg = get_config(name)
        assert isinstance(cfg["small_size_range"], tuple)
        assert 1 <= cfg["page_size"] <= 1_000_000


def test_overrides_apply_and_validate():
    cfg = get_config("small-pages", overrides={"page_size": 128, "free_rate": 0.5})
    assert cfg["page_size"] == 128
    assert cfg["free_rate"] == 0.5

    with pytest.raises(ValueError):
        get_config("small-pages", overrides={"page_size": 0})
    with pytest.raises(ValueError):
        get_config("small-pages", overrides={"free_rate": 1.5})
    with pytest.raises(ValueError):
        get_config("small-pages", overrides={"small_size_range": [5, 1]})


def test_unknown_scenario_raises_key_error():
    with pytest.raises(KeyError):
        get_config("no-such-scenario")


def test_missing_config_raises_value_error():
    with pytest.raises(ValueError):
        get_config(None)


def test_json_scenarios_extend_defaults(tmp_path):
    extra = dict(DEFAULTS["small-pages"], description="mío", page_size=8)
    p = tmp_path / "scenarios.json"
    p.write_text(json.dumps({"custom": extra}), encoding="utf-8")

    assert load_from_json(tmp_path / "missing.json") == {}
    assert available_scenarios(p)["custom"] == "mío"
    assert get_config("custom", p)["page_size"] == 8


# ----------------------------------------------------------------------
# Carga de trabajo
# ----------------------------------------------------------------------
def test_workload_is_deterministic_per_seed():
    cfg = get_config("churn-intensive")
    assert generate_workload(cfg, seed=3) == generate_workload(cfg, seed=3)
    assert generate_workload(cfg, seed=3) != generate_workload(cfg, seed=4)


def test_workload_only_frees_live_tags():
    cfg = get_config("churn-intensive", overrides={"n_requests": 500})
    live = set()
    for req in generate_workload(cfg, seed=11):
        if req.is_free:
            assert req.target_tag in live
            live.discard(req.target_tag)
        else:
            assert req.size > 0
            live.add(req.tag)


def test_workload_user_requests_first():
    cfg = get_config("small-pages", overrides={"n_requests": 10})
    manual = [Request(40, 8), Request(-40, 0)]
    ops = generate_workload(cfg, seed=1, user_requests=manual)
    assert ops[:2] == manual
    assert len(ops) == 12
    assert all(r.target_tag > 40 for r in ops[2:])

    only = generate_workload(cfg, seed=1, user_requests=manual, respect_user_requests_only=True)
    assert only == manual


# ----------------------------------------------------------------------
# Runner
# ----------------------------------------------------------------------
EXAMPLE = [Request(1, 50), Request(2, 10), Request(-1), Request(-2), Request(3, 150)]


def test_run_with_explicit_requests():
    summary, partitions = run_simulation(
        scenario=None, scenarios_path=None, seed=None,
        overrides={"page_size": 100}, requests=EXAMPLE,
    )
    assert summary["n_pages_requested"] == 2
    assert summary["max_free_partition_size"] == 50
    assert summary["max_free_partition_address"] == 150
    assert summary["ops_count"] == len(EXAMPLE)
    assert summary["growth_count"] == 2
    assert summary["split_count"] == 1
    assert summary["merge_count"] == 2
    assert summary["hit_ratio_pct"] == 100.0
    assert partitions == [(0, 150, 3), (150, 50, -1)]

    manifest = {m["tag"]: m for m in summary["tags_manifest"]}
    assert manifest[1]["alive"] is False and manifest[1]["freed_at"] == 2
    assert manifest[3]["alive"] is True and manifest[3]["bytes"] == 150

    traces = summary["op_traces"]
    assert [t["pages_requested"] for t in traces] == [1, 1, 1, 1, 2]
    assert [t["heap_size"] for t in traces] == [100, 100, 100, 100, 200]


def test_rejected_request_counts_as_miss():
    summary, _ = run_simulation(
        scenario=None, scenarios_path=None, seed=None,
        overrides={"page_size": 100}, requests=[Request(1, 10), Request(2, 0)],
    )
    assert summary["hit_ratio_pct"] == 50.0


def test_explicit_requests_need_page_size():
    with pytest.raises(ValueError):
        run_simulation(scenario=None, scenarios_path=None, seed=None, overrides={}, requests=EXAMPLE)


def test_scenario_run_matches_plain_replay():
    cfg = get_config("small-pages", overrides={"n_requests": 300})
    summary, _ = run_simulation(
        scenario="small-pages", scenarios_path=None, seed=5, overrides={"n_requests": 300},
    )
    result, elapsed = replay(cfg["page_size"], generate_workload(cfg, seed=5))
    assert elapsed >= 0
    assert summary["n_pages_requested"] == result.n_pages_requested
    assert summary["max_free_partition_size"] == result.max_free_partition_size
    assert summary["max_free_partition_address"] == result.max_free_partition_address


def test_heap_update_hook_sees_every_request():
    seen = []
    run_simulation(
        scenario=None, scenarios_path=None, seed=None, overrides={"page_size": 100},
        requests=EXAMPLE, on_heap_update=seen.append,
    )
    assert len(seen) == len(EXAMPLE)
    assert seen[3] == [(0, 100, -1)]


def test_export_json_and_csv(tmp_path):
    out_json = tmp_path / "res" / "run.json"
    summary, _ = run_simulation(
        scenario=None, scenarios_path=None, seed=None, overrides={"page_size": 100},
        requests=EXAMPLE, out=str(out_json),
    )
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data["n_pages_requested"] == 2
    assert len(data["op_traces"]) == len(EXAMPLE)

    out_csv = tmp_path / "run.csv"
    run_simulation(
        scenario=None, scenarios_path=None, seed=None, overrides={"page_size": 100},
        requests=EXAMPLE, out=str(out_csv),
    )
    rows = list(csv.DictReader(out_csv.open(encoding="utf-8")))
    assert len(rows) == 1
    assert rows[0]["scenario"] == "requests-only"
    assert rows[0]["n_pages_requested"] == "2"
