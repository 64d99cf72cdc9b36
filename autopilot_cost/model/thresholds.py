# autopilot_cost/model/thresholds.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from ..types import ComputeClass


@dataclass(frozen=True)
class RatioBand:
    """Допустимый диапазон memory:cpu (MiB на mCPU), границы включительно."""
    min: float = 0.0
    max: float = 0.0

    def contains(self, ratio: float) -> bool:
        return self.min <= ratio <= self.max


@dataclass(frozen=True)
class ClassLimits:
    """
    Ограничения класса: полоса ratio + потолки по mCPU и памяти.
    Нулевой потолок означает, что в класс не попадает ни один workload.
    """
    ratio: RatioBand = RatioBand()
    cpu_m_max: int = 0
    memory_mib_max: int = 0

    def admits(self, ratio: float, cpu_m: int, memory_mib: int) -> bool:
        return (
            self.ratio.contains(ratio)
            and cpu_m <= self.cpu_m_max
            and memory_mib <= self.memory_mib_max
        )


@dataclass(frozen=True)
class ResourceBand:
    """min/max по mCPU и памяти для GPU-моделей."""
    cpu_m_min: int = 0
    cpu_m_max: int = 0
    memory_mib_min: int = 0
    memory_mib_max: int = 0

    def contains(self, cpu_m: int, memory_mib: int) -> bool:
        return (
            self.cpu_m_min <= cpu_m <= self.cpu_m_max
            and self.memory_mib_min <= memory_mib <= self.memory_mib_max
        )


def _frozen(m: Mapping) -> Mapping:
    return MappingProxyType(dict(m))


@dataclass(frozen=True)
class ClassificationThresholds:
    """
    Числовые пороги классификатора.

    classes: ограничения для классов, которые выбираются по ratio
        (General-purpose, Scale-out, Balanced), а также для
        Scale-out arm64 и Performance, где проверка только советующая.
    gpu_pod_bands / accelerator_bands: полосы по GPU-моделям.
    Отсутствующий класс/модель == всё по нулям.
    """
    classes: Mapping[ComputeClass, ClassLimits] = field(default_factory=dict)
    gpu_pod_bands: Mapping[str, ResourceBand] = field(default_factory=dict)
    accelerator_bands: Mapping[str, ResourceBand] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "classes", _frozen(self.classes))
        object.__setattr__(self, "gpu_pod_bands", _frozen(self.gpu_pod_bands))
        object.__setattr__(self, "accelerator_bands", _frozen(self.accelerator_bands))

    def limits(self, compute_class: ComputeClass) -> ClassLimits:
        return self.classes.get(compute_class, ClassLimits())


@dataclass(frozen=True)
class ClassifierSettings:
    """Категориальные подсказки: префиксы машинных семейств и флагманская GPU."""
    compute_optimized_prefixes: Tuple[str, ...] = ()
    accelerator_optimized_prefixes: Tuple[str, ...] = ()
    arm64_prefix: str = ""
    flagship_gpu: str = ""

    def __post_init__(self) -> None:
        # пустые префиксы (нет ключа в конфиге) не должны совпадать со всем подряд
        object.__setattr__(
            self, "compute_optimized_prefixes", _clean(self.compute_optimized_prefixes)
        )
        object.__setattr__(
            self, "accelerator_optimized_prefixes", _clean(self.accelerator_optimized_prefixes)
        )
        object.__setattr__(self, "arm64_prefix", self.arm64_prefix.strip())
        object.__setattr__(self, "flagship_gpu", self.flagship_gpu.strip())

    def is_compute_optimized(self, machine_type: str) -> bool:
        return _matches_any(machine_type, self.compute_optimized_prefixes)

    def is_accelerator_optimized(self, machine_type: str) -> bool:
        return _matches_any(machine_type, self.accelerator_optimized_prefixes)

    def is_arm(self, machine_type: str) -> bool:
        return bool(self.arm64_prefix) and self.arm64_prefix in (machine_type or "")

    def is_flagship_gpu(self, gpu_model: str) -> bool:
        return bool(self.flagship_gpu) and gpu_model == self.flagship_gpu


def _clean(prefixes) -> Tuple[str, ...]:
    return tuple(p.strip() for p in prefixes if p and p.strip())


def _matches_any(machine_type: str, prefixes: Tuple[str, ...]) -> bool:
    family = (machine_type or "").split("-", 1)[0]
    return any(family.startswith(p) for p in prefixes)

