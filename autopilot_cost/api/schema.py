# autopilot_cost/api/schema.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    region: str
    price_entries: int


class ResourcesModel(BaseModel):
    cpu_m: int = Field(0, ge=0)
    memory_mib: int = Field(0, ge=0)
    storage_mib: int = Field(0, ge=0)


class NormalizeRequest(ResourcesModel):
    # None -> как в config.ini
    memory_follows_cpu: Optional[bool] = None


class ClassifyRequest(BaseModel):
    workload: str = "workload"
    machine_type: str = ""
    cpu_m: int = Field(..., ge=0)
    memory_mib: int = Field(..., ge=0)
    gpu_count: int = Field(0, ge=0)
    gpu_model: str = ""
    # None -> определяем по machine_type и gce_arm64_prefix
    is_arm: Optional[bool] = None


class ClassifyResponse(BaseModel):
    compute_class: str
    ratio: Optional[float]
    diagnostics: List[str]


class PriceRequest(ResourcesModel):
    compute_class: str
    gpu_count: int = Field(0, ge=0)
    gpu_model: str = ""
    machine_type: str = ""
    spot: bool = False


class PriceResponse(BaseModel):
    hourly_cost: float
    diagnostics: List[str]


class EstimateRequest(BaseModel):
    """Документ снапшота: kubectl-выгрузки нод, pod'ов и метрик."""
    nodes: Dict[str, Any] = Field(default_factory=dict)
    pods: Dict[str, Any] = Field(default_factory=dict)
    pod_metrics: Optional[Dict[str, Any]] = None


class WorkloadModel(BaseModel):
    name: str
    node: str
    containers: int
    cpu_m: int
    memory_mib: int
    storage_mib: int
    gpu_model: str
    gpu_count: int
    compute_class: str
    spot: bool
    hourly_cost_usd: float
    diagnostics: List[str]


class NodeModel(BaseModel):
    name: str
    instance_type: str
    region: str
    spot: bool
    accelerator: str
    hourly_cost_usd: float
    workloads: List[str]


class TotalsModel(BaseModel):
    on_demand_usd: float
    spot_usd: float
    cluster_fee_usd: float
    total_usd: float
    one_year_commit_usd: float
    three_year_commit_usd: float


class EstimateResponse(BaseModel):
    nodes: Dict[str, NodeModel]
    workloads: List[WorkloadModel]
    orphans: List[str]
    totals: TotalsModel
