# autopilot_cost/model/prices.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from ..types import ComputeClass, PriceKey, ResourceKind


@dataclass(frozen=True)
class MachineKey:
    """Базовая ставка GCE машинного семейства (a2, c2d, g2 ...)."""
    family: str
    spot: bool
    kind: ResourceKind  # CPU (за vCPU-час) или MEMORY (за GB-час)


@dataclass(frozen=True)
class GpuKey:
    """Надбавка за одну GPU в час для класса (Accelerator / GPU Pod)."""
    compute_class: ComputeClass
    spot: bool
    model: str


@dataclass(frozen=True)
class PriceTable:
    """
    Прайс в виде трёх словарей.

    rates: ставки за 1000 единиц (mCPU / MiB) в час.
    machine_rates: базовые цены GCE машин.
    gpu_rates: цена GPU по модели.

    Отсутствие ключа -- единственный вид "нет цены", lookup возвращает None.
    """
    region: str = ""
    rates: Mapping[PriceKey, float] = field(default_factory=dict)
    machine_rates: Mapping[MachineKey, float] = field(default_factory=dict)
    gpu_rates: Mapping[GpuKey, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))
        object.__setattr__(self, "machine_rates", MappingProxyType(dict(self.machine_rates)))
        object.__setattr__(self, "gpu_rates", MappingProxyType(dict(self.gpu_rates)))

    def rate(self, compute_class: Optional[ComputeClass], spot: bool, kind: ResourceKind) -> Optional[float]:
        return self.rates.get(PriceKey(compute_class, spot, kind))

    def storage_rate(self, spot: bool) -> Optional[float]:
        return self.rate(None, spot, ResourceKind.STORAGE)

    def machine_rate(self, family: str, spot: bool, kind: ResourceKind) -> Optional[float]:
        return self.machine_rates.get(MachineKey(family, spot, kind))

    def has_family(self, family: str, spot: bool) -> bool:
        return any(k.family == family and k.spot == spot for k in self.machine_rates)

    def gpu_rate(self, compute_class: ComputeClass, spot: bool, model: str) -> Optional[float]:
        return self.gpu_rates.get(GpuKey(compute_class, spot, model))

    def entry_count(self) -> int:
        return len(self.rates) + len(self.machine_rates) + len(self.gpu_rates)
