from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from autopilot_cost.api.server import app, manager
from autopilot_cost.config import load_settings
from autopilot_cost.sim.costs import price_table_from_dict

ROOT = Path(__file__).resolve().parent.parent

REFERENCE_PRICES = {
    "region": "us-central1-a",
    "storage": 0.0000706,
    "classes": {
        "general-purpose": {
            "on_demand": {"cpu": 0.0573, "memory": 0.0063421},
            "spot": {"cpu": 0.0172, "memory": 0.0019026},
        },
        "balanced": {
            "on_demand": {"cpu": 0.0831, "memory": 0.0091933},
            "spot": {"cpu": 0.0249, "memory": 0.002758},
        },
        "scale-out": {
            "on_demand": {"cpu": 0.0722, "memory": 0.0079911},
            "spot": {"cpu": 0.0217, "memory": 0.0023973},
        },
        "gpu-pod": {
            "on_demand": {"cpu": 0.071, "memory": 0.0078574, "storage": 0.0000548},
            "spot": {"cpu": 0.0213, "memory": 0.0023572, "storage": 0.0000219},
        },
        "performance": {
            "on_demand": {"cpu": 0.01, "memory": 0.001, "storage": 0.0001},
        },
        "accelerator": {
            "on_demand": {"cpu": 0.01, "memory": 0.001, "storage": 0.0001},
        },
    },
    "gpus": {
        "gpu-pod": {
            "on_demand": {"nvidia-l4": 0.6783},
            "spot": {"nvidia-tesla-t4": 0.1272},
        },
        "accelerator": {
            "on_demand": {"nvidia-h100-80gb": 1.09},
        },
    },
    "machines": {
        "c2": {
            "on_demand": {"cpu": 0.03, "memory": 0.004},
            "spot": {"cpu": 0.01, "memory": 0.001},
        },
        "h3": {
            "on_demand": {"cpu": 0.04, "memory": 0.003},
        },
        "a3": {
            "on_demand": {"cpu": 0.02, "memory": 0.002},
        },
    },
}


@pytest.fixture(scope="session")
def settings():
    return load_settings(ROOT / "config.ini")


@pytest.fixture(scope="session")
def prices():
    return price_table_from_dict(REFERENCE_PRICES)


@pytest.fixture()
def client(settings, prices):
    manager.configure(settings, prices)
    return TestClient(app)


def k8s_node(name, instance_type, spot=False, accelerator=None):
    labels = {
        "node.kubernetes.io/instance-type": instance_type,
        "topology.kubernetes.io/region": "us-central1",
    }
    if spot:
        labels["cloud.google.com/gke-spot"] = "true"
    if accelerator:
        labels["cloud.google.com/gke-accelerator"] = accelerator
    return {"metadata": {"name": name, "labels": labels}}


def k8s_pod(name, node, containers, namespace="default", phase="Running", accelerator=None):
    spec = {"nodeName": node, "containers": containers}
    if accelerator:
        spec["nodeSelector"] = {"cloud.google.com/gke-accelerator": accelerator}
    return {
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec,
        "status": {"phase": phase},
    }


def k8s_container(name, requests=None, limits=None):
    return {"name": name, "resources": {"requests": requests or {}, "limits": limits or {}}}
