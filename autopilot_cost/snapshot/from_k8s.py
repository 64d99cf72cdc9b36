# autopilot_cost/snapshot/from_k8s.py
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from kubernetes.utils.quantity import parse_quantity

from ..model.entities import ContainerSample, Node, PodSample
from ..types import GpuModel, MachineType, NodeName, WorkloadName

log = logging.getLogger(__name__)

# Системные namespace'ы в Autopilot не тарифицируются
EXCLUDED_NAMESPACES = ("kube-system", "gke-gmp-system", "gmp-system")

INSTANCE_TYPE_LABELS = ("beta.kubernetes.io/instance-type", "node.kubernetes.io/instance-type")
REGION_LABEL = "topology.kubernetes.io/region"
SPOT_LABEL = "cloud.google.com/gke-spot"
ACCELERATOR_LABEL = "cloud.google.com/gke-accelerator"
GPU_RESOURCE = "nvidia.com/gpu"

MIB = 1024 ** 2


def _quantity(q: Any) -> Optional[Any]:
    if q is None or str(q).strip() == "":
        return None
    try:
        return parse_quantity(q)
    except ValueError:
        log.warning("Can't parse resource quantity %r, treating as 0", q)
        return None


def parse_cpu(q: Any) -> int:
    """"250m" / "0.5" / "12345n" -> mCPU (вверх до целого)."""
    value = _quantity(q)
    if value is None:
        return 0
    return int(math.ceil(value * 1000))


def parse_mebibytes(q: Any) -> int:
    """"128Mi" / "1G" / "1048576" -> MiB (вниз до целого)."""
    value = _quantity(q)
    if value is None:
        return 0
    return int(value // MIB)


def parse_count(q: Any) -> int:
    value = _quantity(q)
    if value is None:
        return 0
    return int(value)


def _optional(parse, resources: Mapping[str, Any], *keys: str) -> Optional[int]:
    for key in keys:
        if key in resources:
            return parse(resources[key])
    return None


# ---------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------


def node_from_k8s(item: Mapping[str, Any]) -> Node:
    meta = item.get("metadata", {}) or {}
    labels = meta.get("labels", {}) or {}
    instance_type = next((labels[k] for k in INSTANCE_TYPE_LABELS if labels.get(k)), "unknown")
    return Node(
        name=NodeName(meta.get("name", "")),
        instance_type=MachineType(instance_type),
        region=labels.get(REGION_LABEL, ""),
        spot=labels.get(SPOT_LABEL) == "true",
        accelerator=labels.get(ACCELERATOR_LABEL, ""),
    )


def nodes_from_k8s(node_list: Mapping[str, Any]) -> Dict[NodeName, Node]:
    """`kubectl get nodes -o json` -> {имя: Node}."""
    nodes: Dict[NodeName, Node] = {}
    for item in node_list.get("items", []) or []:
        node = node_from_k8s(item)
        if node.name:
            nodes[node.name] = node
    return nodes


# ---------------------------------------------------------------------
# Pods
# ---------------------------------------------------------------------


def _metrics_index(pod_metrics: Optional[Mapping[str, Any]]) -> Dict[Tuple[str, str], Dict[str, Mapping[str, Any]]]:
    """PodMetricsList -> {(namespace, pod): {container: usage}}."""
    index: Dict[Tuple[str, str], Dict[str, Mapping[str, Any]]] = {}
    for item in (pod_metrics or {}).get("items", []) or []:
        meta = item.get("metadata", {}) or {}
        key = (meta.get("namespace", ""), meta.get("name", ""))
        index[key] = {
            c.get("name", ""): c.get("usage", {}) or {}
            for c in item.get("containers", []) or []
        }
    return index


def container_from_k8s(name: str, spec: Mapping[str, Any], usage: Mapping[str, Any]) -> ContainerSample:
    resources = spec.get("resources", {}) or {}
    requests = resources.get("requests", {}) or {}
    limits = resources.get("limits", {}) or {}
    gpu = requests.get(GPU_RESOURCE, limits.get(GPU_RESOURCE))
    return ContainerSample(
        name=name,
        usage_cpu_m=parse_cpu(usage.get("cpu")),
        usage_memory_mib=parse_mebibytes(usage.get("memory")),
        usage_storage_mib=parse_mebibytes(usage.get("ephemeral-storage")),
        req_cpu_m=_optional(parse_cpu, requests, "cpu"),
        req_memory_mib=_optional(parse_mebibytes, requests, "memory"),
        req_storage_mib=_optional(parse_mebibytes, requests, "ephemeral-storage", "storage"),
        req_gpu=parse_count(gpu),
    )


def pod_samples_from_k8s(
    pod_list: Mapping[str, Any],
    pod_metrics: Optional[Mapping[str, Any]] = None,
    excluded_namespaces: Iterable[str] = EXCLUDED_NAMESPACES,
) -> List[PodSample]:
    """
    `kubectl get pods -o json` + PodMetricsList -> PodSample'ы.

    Берём только Running pod'ы вне системных namespace'ов. Контейнеры,
    которые есть только в метриках, тоже учитываются (без requests).
    """
    excluded = set(excluded_namespaces)
    metrics = _metrics_index(pod_metrics)
    samples: List[PodSample] = []

    for item in pod_list.get("items", []) or []:
        meta = item.get("metadata", {}) or {}
        spec = item.get("spec", {}) or {}
        status = item.get("status", {}) or {}
        namespace = meta.get("namespace", "default")
        if namespace in excluded:
            continue
        phase = status.get("phase")
        if phase and phase != "Running":
            continue

        usage_by_container = metrics.get((namespace, meta.get("name", "")), {})
        containers: List[ContainerSample] = []
        seen = set()
        for c in spec.get("containers", []) or []:
            cname = c.get("name", "")
            seen.add(cname)
            containers.append(container_from_k8s(cname, c, usage_by_container.get(cname, {})))
        for cname, usage in usage_by_container.items():
            if cname not in seen:
                containers.append(container_from_k8s(cname, {}, usage))

        node_selector = spec.get("nodeSelector", {}) or {}
        samples.append(PodSample(
            name=WorkloadName(meta.get("name", "")),
            namespace=namespace,
            node_name=NodeName(spec.get("nodeName", "") or ""),
            containers=tuple(containers),
            gpu_model=GpuModel(node_selector.get(ACCELERATOR_LABEL, "")),
        ))

    return samples
