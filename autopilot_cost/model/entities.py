# autopilot_cost/model/entities.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..types import (
    ComputeClass, CpuMillis, GpuModel, MachineType, Mebibytes, NodeName, UsdPerHour, WorkloadName
)
from ..sim.diagnostics import Diagnostic


@dataclass(frozen=True)
class ResourceTriple:
    """Ресурсы workload'а в единицах биллинга: mCPU и MiB."""
    cpu_m: CpuMillis
    memory_mib: Mebibytes
    storage_mib: Mebibytes


@dataclass
class Node:
    name: NodeName
    instance_type: MachineType
    region: str = ""
    spot: bool = False
    accelerator: str = ""

    # заполняется агрегатором
    workloads: List["Workload"] = field(default_factory=list)
    cost: float = 0.0


@dataclass(frozen=True)
class ContainerSample:
    """
    Один контейнер pod'а: фактическое потребление (metrics-server)
    и requests из спеки. None == значение неизвестно.
    """
    name: str
    usage_cpu_m: int = 0
    usage_memory_mib: int = 0
    usage_storage_mib: int = 0
    req_cpu_m: Optional[int] = None
    req_memory_mib: Optional[int] = None
    req_storage_mib: Optional[int] = None
    req_gpu: int = 0


@dataclass(frozen=True)
class PodSample:
    name: WorkloadName
    namespace: str
    node_name: NodeName
    containers: Tuple[ContainerSample, ...] = ()
    gpu_model: GpuModel = GpuModel("")


@dataclass(frozen=True)
class Workload:
    name: WorkloadName
    node_name: NodeName
    container_count: int
    resources: ResourceTriple
    gpu_model: GpuModel
    gpu_count: int
    compute_class: ComputeClass
    hourly_cost: UsdPerHour
    spot: bool = False
    diagnostics: Tuple[Diagnostic, ...] = ()


@dataclass
class Snapshot:
    """Срез кластера: ноды и pod'ы с метриками."""
    nodes: Dict[NodeName, Node]
    pods: List[PodSample]
