import json

import pytest

from run_autopilot_cost_server import export_estimate

from conftest import REFERENCE_PRICES, ROOT, k8s_container, k8s_node, k8s_pod


def test_export_estimate_writes_json(tmp_path):
    snapshot = tmp_path / "k8s.json"
    snapshot.write_text(json.dumps({
        "nodes": {"items": [k8s_node("n1", "e2-standard-8")]},
        "pods": {"items": [
            k8s_pod("web", "n1", [k8s_container("app", {"cpu": "4", "memory": "16000Mi", "ephemeral-storage": "10000Mi"})]),
        ]},
    }), encoding="utf-8")
    prices = tmp_path / "prices.json"
    prices.write_text(json.dumps(REFERENCE_PRICES), encoding="utf-8")
    out = tmp_path / "k8s.estimate.json"

    assert export_estimate(snapshot, out, ROOT / "config.ini", prices) == out

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["nodes"]["n1"]["workloads"] == ["web"]
    assert data["workloads"][0]["hourly_cost_usd"] == pytest.approx(0.3313796, abs=1e-9)
    assert data["totals"]["total_usd"] == pytest.approx(0.4313796, abs=1e-9)


def test_export_estimate_missing_snapshot(tmp_path):
    with pytest.raises(OSError):
        export_estimate(tmp_path / "nope.json", tmp_path / "out.json", ROOT / "config.ini", ROOT / "prices.json")
