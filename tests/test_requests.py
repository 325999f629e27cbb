import json

import pytest

from wfsim.sim.requests import Request, dump_requests, load_requests, parse_requests


def test_parse_text_format():
    lines = ["# comentario", "1 50", "", "  2 10  # inline", "-1", "-2 0"]
    assert parse_requests(lines) == [Request(1, 50), Request(2, 10), Request(-1, 0), Request(-2, 0)]


def test_request_helpers():
    assert Request(-4).is_free and Request(-4).target_tag == 4
    assert not Request(3, 8).is_free and Request(3, 8).target_tag == 3


@pytest.mark.parametrize("line", ["1", "a 10", "1 2 3", "3 0", "4 x"])
def test_parse_rejects_malformed_lines(line):
    with pytest.raises(ValueError, match="Línea 2"):
        parse_requests(["1 10", line])


def test_load_json_objects_and_pairs(tmp_path):
    p = tmp_path / "reqs.json"
    p.write_text(json.dumps([{"tag": 1, "size": 40}, [2, 8], [-1]]), encoding="utf-8")
    assert load_requests(p) == [Request(1, 40), Request(2, 8), Request(-1, 0)]


def test_load_json_must_be_list(tmp_path):
    p = tmp_path / "reqs.json"
    p.write_text(json.dumps({"tag": 1}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_requests(p)


def test_load_csv(tmp_path):
    p = tmp_path / "reqs.csv"
    p.write_text("tag,size\n1,40\n-1,\n", encoding="utf-8")
    assert load_requests(p) == [Request(1, 40), Request(-1, 0)]


def test_load_csv_requires_tag_header(tmp_path):
    p = tmp_path / "reqs.csv"
    p.write_text("name,size\nx,1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_requests(p)


def test_dump_then_load_text(tmp_path):
    reqs = [Request(1, 40), Request(2, 3), Request(-1, 0)]
    p = tmp_path / "out" / "reqs.txt"
    dump_requests(reqs, p)
    assert p.read_text(encoding="utf-8") == "1 40\n2 3\n-1\n"
    assert load_requests(p) == reqs
