import pytest

from autopilot_cost.config import Fees
from autopilot_cost.model.entities import ContainerSample, Node, PodSample
from autopilot_cost.sim.aggregate import effective_usage, estimate_cluster, price_pod, sum_containers
from autopilot_cost.sim.diagnostics import DiagnosticKind
from autopilot_cost.sim.result import compute_totals
from autopilot_cost.types import ComputeClass

GP_4_16 = 0.3313796


def _pod(name, node, cpu_m, memory_mib, storage_mib=10000, **kw):
    c = ContainerSample("app", req_cpu_m=cpu_m, req_memory_mib=memory_mib, req_storage_mib=storage_mib)
    return PodSample(name=name, namespace="default", node_name=node, containers=(c,), **kw)


def test_effective_usage_takes_max_of_usage_and_request():
    c = ContainerSample("app", usage_cpu_m=300, usage_memory_mib=100, req_cpu_m=200, req_memory_mib=512)
    assert effective_usage(c) == (300, 512, 0)


def test_sum_containers():
    pod = PodSample("p", "default", "n1", containers=(
        ContainerSample("a", req_cpu_m=100, req_memory_mib=128, req_gpu=1),
        ContainerSample("b", usage_cpu_m=250, usage_storage_mib=20, req_gpu=1),
    ))
    raw, gpus = sum_containers(pod)
    assert (raw.cpu_m, raw.memory_mib, raw.storage_mib, gpus) == (350, 128, 20, 2)


def test_price_pod(settings, prices):
    node = Node("n1", "e2-standard-8")
    w = price_pod(_pod("web", "n1", 4000, 16000), node, settings, prices)
    assert w.compute_class is ComputeClass.GENERAL_PURPOSE
    assert w.hourly_cost == pytest.approx(GP_4_16, abs=1e-9)
    assert w.container_count == 1
    assert not w.spot


def test_price_pod_unknown_node(settings, prices):
    w = price_pod(_pod("web", "ghost", 4000, 16000), None, settings, prices)
    assert w.hourly_cost == pytest.approx(GP_4_16, abs=1e-9)
    assert DiagnosticKind.DEGENERATE_INPUT in [d.kind for d in w.diagnostics]


def test_estimate_cluster(settings, prices):
    nodes = {
        "n1": Node("n1", "e2-standard-8"),
        "n2": Node("n2", "e2-standard-32", spot=True),
    }
    pods = [
        _pod("web", "n1", 4000, 16000),
        _pod("batch", "n2", 25000, 100000),
        _pod("lost", "ghost", 4000, 16000),
    ]
    est = estimate_cluster(nodes, pods, settings, prices)

    assert est.nodes["n1"].cost == pytest.approx(GP_4_16, abs=1e-9)
    assert est.nodes["n2"].cost == pytest.approx(0.620966, abs=1e-9)
    assert [w.name for w in est.orphans] == ["lost"]
    assert len(est.workloads) == 3

    t = est.totals
    assert t.on_demand_usd == pytest.approx(2 * GP_4_16, abs=1e-9)
    assert t.spot_usd == pytest.approx(0.620966, abs=1e-9)
    assert t.total_usd == pytest.approx(2 * GP_4_16 + 0.620966 + 0.1, abs=1e-9)
    assert t.one_year_commit_usd == pytest.approx(0.8 * 2 * GP_4_16 + 0.620966 + 0.1, abs=1e-9)

    # входные ноды не трогаем
    assert nodes["n1"].workloads == [] and nodes["n1"].cost == 0.0


def test_per_node_costs_sum_to_workloads(settings, prices):
    nodes = {"n1": Node("n1", "e2-standard-8")}
    pods = [_pod(f"p{i}", "n1", 500 * (i + 1), 2000 * (i + 1)) for i in range(5)]
    est = estimate_cluster(nodes, pods, settings, prices)
    assert est.nodes["n1"].cost == pytest.approx(sum(w.hourly_cost for w in est.workloads))
    assert len(est.nodes["n1"].workloads) == 5


def test_totals_without_workloads():
    t = compute_totals([], Fees())
    assert t.total_usd == pytest.approx(0.1)
    assert t.one_year_commit_usd == pytest.approx(0.1)
