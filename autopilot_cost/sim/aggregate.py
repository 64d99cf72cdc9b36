# autopilot_cost/sim/aggregate.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import Settings
from ..model.entities import ContainerSample, Node, PodSample, ResourceTriple, Workload
from ..model.prices import PriceTable
from ..types import CpuMillis, Mebibytes, NodeName, UsdPerHour
from .classify import classify
from .diagnostics import Diagnostic, DiagnosticKind, emit
from .normalize import normalize
from .pricing import quote
from .result import ClusterEstimate, compute_totals

log = logging.getLogger(__name__)


def effective_usage(c: ContainerSample) -> Tuple[int, int, int]:
    """
    Биллинг считает не меньше request'а: max(usage, request) по каждому ресурсу.
    """
    cpu = max(c.usage_cpu_m, c.req_cpu_m or 0)
    memory = max(c.usage_memory_mib, c.req_memory_mib or 0)
    storage = max(c.usage_storage_mib, c.req_storage_mib or 0)
    return cpu, memory, storage


def sum_containers(pod: PodSample) -> Tuple[ResourceTriple, int]:
    """Сумма по контейнерам pod'а: (сырые ресурсы, число GPU)."""
    cpu = memory = storage = gpu = 0
    for c in pod.containers:
        c_cpu, c_mem, c_sto = effective_usage(c)
        cpu += c_cpu
        memory += c_mem
        storage += c_sto
        gpu += c.req_gpu
    raw = ResourceTriple(cpu_m=CpuMillis(cpu), memory_mib=Mebibytes(memory), storage_mib=Mebibytes(storage))
    return raw, gpu


def price_pod(pod: PodSample, node: Optional[Node], settings: Settings, table: PriceTable) -> Workload:
    """
    Один pod -> Workload: сумма контейнеров, нормализация,
    выбор класса, цена. Ничего не мутирует.
    """
    raw, gpu_count = sum_containers(pod)
    resources = normalize(raw.cpu_m, raw.memory_mib, raw.storage_mib, settings.normalization)

    notes: List[Diagnostic] = []
    if node is None:
        notes.append(Diagnostic(
            DiagnosticKind.DEGENERATE_INPUT,
            f"Node {pod.node_name or '-'} of workload {pod.name} is unknown; pricing as on-demand.",
        ))
    machine_type = node.instance_type if node else ""
    spot = node.spot if node else False

    classification = classify(
        pod.name,
        machine_type,
        resources.cpu_m,
        resources.memory_mib,
        gpu_count,
        pod.gpu_model,
        settings.classifier.is_arm(machine_type),
        settings.thresholds,
        settings.classifier,
    )
    q = quote(
        resources, gpu_count, pod.gpu_model, classification.compute_class, machine_type, spot, table,
    )
    notes.extend(classification.diagnostics)
    notes.extend(q.diagnostics)

    return Workload(
        name=pod.name,
        node_name=pod.node_name,
        container_count=len(pod.containers),
        resources=resources,
        gpu_model=pod.gpu_model,
        gpu_count=gpu_count,
        compute_class=classification.compute_class,
        hourly_cost=UsdPerHour(q.hourly_cost),
        spot=spot,
        diagnostics=tuple(notes),
    )


def estimate_cluster(
    nodes: Mapping[NodeName, Node],
    pods: Iterable[PodSample],
    settings: Settings,
    table: PriceTable,
) -> ClusterEstimate:
    """
    Оценка кластера целиком.

    Сначала независимо считаем все workload'ы, потом раскладываем их
    по нодам (по одному аккумулятору на ноду). Входные ноды не меняются.
    """
    workloads: List[Workload] = []
    for pod in pods:
        w = price_pod(pod, nodes.get(pod.node_name), settings, table)
        emit(w.diagnostics, log)
        workloads.append(w)

    result_nodes: Dict[NodeName, Node] = {
        name: replace(n, workloads=[], cost=0.0) for name, n in nodes.items()
    }
    orphans: List[Workload] = []
    for w in workloads:
        entry = result_nodes.get(w.node_name)
        if entry is None:
            orphans.append(w)
            continue
        entry.workloads.append(w)
        entry.cost += w.hourly_cost

    totals = compute_totals(workloads, settings.fees)
    log.info(
        "Estimated %d workloads on %d nodes: %.4f USD/h (incl. cluster fee)",
        len(workloads), len(result_nodes), totals.total_usd,
    )
    return ClusterEstimate(nodes=result_nodes, workloads=workloads, totals=totals, orphans=orphans)
