# autopilot_cost/snapshot/io.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from ..model.entities import Snapshot, Workload
from ..sim.result import ClusterEstimate
from .from_k8s import nodes_from_k8s, pod_samples_from_k8s


def snapshot_from_dict(data: Mapping[str, Any]) -> Snapshot:
    """
    {"nodes": NodeList, "pods": PodList, "pod_metrics": PodMetricsList} -> Snapshot.
    pod_metrics необязателен: без него считаем только по requests.
    """
    return Snapshot(
        nodes=nodes_from_k8s(data.get("nodes") or {}),
        pods=pod_samples_from_k8s(data.get("pods") or {}, data.get("pod_metrics")),
    )


def load_snapshot_from_file(path: Union[str, Path]) -> Snapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return snapshot_from_dict(data)


def workload_to_dict(w: Workload) -> Dict[str, Any]:
    return {
        "name": w.name,
        "node": w.node_name,
        "containers": w.container_count,
        "cpu_m": int(w.resources.cpu_m),
        "memory_mib": int(w.resources.memory_mib),
        "storage_mib": int(w.resources.storage_mib),
        "gpu_model": w.gpu_model,
        "gpu_count": w.gpu_count,
        "compute_class": w.compute_class.display_name,
        "spot": w.spot,
        "hourly_cost_usd": float(w.hourly_cost),
        "diagnostics": [str(d) for d in w.diagnostics],
    }


def estimate_to_dict(estimate: ClusterEstimate) -> Dict[str, Any]:
    nodes_dict = {}
    for n in estimate.nodes.values():
        nodes_dict[n.name] = {
            "name": n.name,
            "instance_type": n.instance_type,
            "region": n.region,
            "spot": n.spot,
            "accelerator": n.accelerator,
            "hourly_cost_usd": float(n.cost),
            "workloads": [w.name for w in n.workloads],
        }

    t = estimate.totals
    return {
        "nodes": nodes_dict,
        "workloads": [workload_to_dict(w) for w in estimate.workloads],
        "orphans": [w.name for w in estimate.orphans],
        "totals": {
            "on_demand_usd": t.on_demand_usd,
            "spot_usd": t.spot_usd,
            "cluster_fee_usd": t.cluster_fee_usd,
            "total_usd": t.total_usd,
            "one_year_commit_usd": t.one_year_commit_usd,
            "three_year_commit_usd": t.three_year_commit_usd,
        },
    }


def save_estimate_to_file(estimate: ClusterEstimate, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(estimate_to_dict(estimate), f, indent=2, sort_keys=True)
