# autopilot_cost/sim/pricing.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..model.entities import ResourceTriple
from ..model.prices import PriceTable
from ..types import ComputeClass, ResourceKind
from .diagnostics import Diagnostic, DiagnosticKind, emit

log = logging.getLogger(__name__)

# GB RAM на vCPU для класса машины
RAM_PER_CORE: Dict[str, float] = {
    "standard": 4.0,
    "highcpu": 2.0,
    "highmem": 4.0,
    "highgpu": 7.0833,
    "ultragpu": 14.1666,
}

# vCPU на одну GPU для типов вида a2-highgpu-1g
VCPUS_PER_GPU: Dict[Tuple[str, str], int] = {
    ("a2", "highgpu"): 12,
    ("a2", "ultragpu"): 12,
    ("a3", "highgpu"): 26,
}

# Семейства, которые в Spot не продаются: для них spot-запрос
# считается по on-demand ставкам
ON_DEMAND_ONLY_FAMILIES = frozenset({"h3"})


@dataclass(frozen=True)
class Quote:
    hourly_cost: float
    diagnostics: Tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class MachineShape:
    family: str
    machine_class: str
    cores: int
    ram_gb: float


def _mode(spot: bool) -> str:
    return "Spot " if spot else ""


def _region(table: PriceTable) -> str:
    return table.region or "this"


def _per_thousand(rate: Optional[float], units: int) -> float:
    return (rate or 0.0) * float(units) / 1000.0


def _resource_cost(
    table: PriceTable,
    cls: ComputeClass,
    resources: ResourceTriple,
    spot: bool,
    machine_type: str,
    local_ssd: bool,
) -> Tuple[float, Tuple[Diagnostic, ...]]:
    """
    cpu + память + диск по ставкам класса.

    local_ssd=False: диск по общей ставке ephemeral storage (классы по ratio),
    иначе по ставке local SSD самого класса. Каждая ненайденная ставка
    считается нулём и даёт замечание.
    """
    storage_cls = cls if local_ssd else None
    parts = (
        (cls, ResourceKind.CPU, resources.cpu_m),
        (cls, ResourceKind.MEMORY, resources.memory_mib),
        (storage_cls, ResourceKind.STORAGE, resources.storage_mib),
    )
    cost = 0.0
    notes: List[Diagnostic] = []
    for rate_cls, kind, units in parts:
        rate = table.rate(rate_cls, spot, kind)
        if rate is None:
            owner = rate_cls.display_name if rate_cls else "ephemeral"
            notes.append(Diagnostic(
                DiagnosticKind.MISSING_PRICE,
                f"Requested {_mode(spot)}{owner} {kind.value} pricing ({machine_type or '-'}) "
                f"is not available in {_region(table)} region.",
            ))
        cost += _per_thousand(rate, units)
    return cost, tuple(notes)


# ---------------------------------------------------------------------
# Цена GCE машины
# ---------------------------------------------------------------------


def parse_machine_type(machine_type: str) -> Optional[MachineShape]:
    """
    "<семейство>-<класс>-<ядра>" -> MachineShape.

    Для a2/a3 последний сегмент может быть числом GPU ("a2-highgpu-1g"),
    тогда ядра считаются по VCPUS_PER_GPU. Неразборчивые типы -> None.
    """
    parts = (machine_type or "").split("-")
    if len(parts) != 3:
        return None
    family, machine_class, size = parts

    cores: Optional[int] = None
    if size.isdigit():
        cores = int(size)
    elif size.endswith("g") and size[:-1].isdigit() and (family, machine_class) in VCPUS_PER_GPU:
        cores = int(size[:-1]) * VCPUS_PER_GPU[(family, machine_class)]
    if cores is None:
        return None

    ram = math.ceil(cores * RAM_PER_CORE.get(machine_class, 0.0))
    return MachineShape(family=family, machine_class=machine_class, cores=cores, ram_gb=float(ram))


def machine_price(machine_type: str, spot: bool, table: PriceTable) -> Quote:
    """
    Базовая цена машины: vCPU * ставка_ядра + RAM * ставка_памяти.

    Семейства из ON_DEMAND_ONLY_FAMILIES в Spot не продаются: для них
    берём on-demand ставки и явно об этом сообщаем. У остальных
    отсутствие ставок -- дыра в прайсе: 0 и замечание.
    """
    shape = parse_machine_type(machine_type)
    if shape is None:
        return Quote(0.0, (Diagnostic(
            DiagnosticKind.MALFORMED_MACHINE_TYPE,
            f"GCE machine type {machine_type!r} can't be parsed as <family>-<class>-<cores>.",
        ),))

    notes: List[Diagnostic] = []
    rate_spot = spot
    if spot and shape.family in ON_DEMAND_ONLY_FAMILIES:
        notes.append(Diagnostic(
            DiagnosticKind.SPOT_UNAVAILABLE,
            f"{shape.family.upper()} machine type is not available in Spot format. "
            f"Defaulting to a regular price.",
        ))
        rate_spot = False

    if not table.has_family(shape.family, rate_spot):
        if table.has_family(shape.family, not rate_spot):
            notes.append(Diagnostic(
                DiagnosticKind.MISSING_PRICE,
                f"Requested {_mode(rate_spot)}pricing for GCE machine type {machine_type} "
                f"is not available in {_region(table)} region.",
            ))
        else:
            notes.append(Diagnostic(
                DiagnosticKind.UNKNOWN_MACHINE_FAMILY,
                f"GCE machine type {machine_type} is not implemented for price querying.",
            ))
        return Quote(0.0, tuple(notes))

    cost = 0.0
    for kind, units in ((ResourceKind.CPU, shape.cores), (ResourceKind.MEMORY, shape.ram_gb)):
        rate = table.machine_rate(shape.family, rate_spot, kind)
        if rate is None:
            notes.append(Diagnostic(
                DiagnosticKind.MISSING_PRICE,
                f"Requested {_mode(rate_spot)}{kind.value} pricing for GCE machine type {machine_type} "
                f"is not available in {_region(table)} region.",
            ))
            continue
        cost += rate * units
    return Quote(cost, tuple(notes))


# ---------------------------------------------------------------------
# Цена по классам
# ---------------------------------------------------------------------

_PriceFn = Callable[[ResourceTriple, int, str, ComputeClass, str, bool, PriceTable], Quote]


def _price_by_ratio_class(resources, gpu_count, gpu_model, cls, machine_type, spot, table) -> Quote:
    cost, notes = _resource_cost(table, cls, resources, spot, machine_type, local_ssd=False)
    return Quote(cost, notes)


def _price_performance(resources, gpu_count, gpu_model, cls, machine_type, spot, table) -> Quote:
    premium, notes = _resource_cost(table, cls, resources, spot, machine_type, local_ssd=True)
    machine = machine_price(machine_type, spot, table)
    return Quote(premium + machine.hourly_cost, notes + machine.diagnostics)


def _price_accelerator(resources, gpu_count, gpu_model, cls, machine_type, spot, table) -> Quote:
    gpu_rate = table.gpu_rate(cls, spot, gpu_model)
    if gpu_rate is None:
        premium = 0.0
        notes: Tuple[Diagnostic, ...] = (Diagnostic(
            DiagnosticKind.UNKNOWN_GPU_MODEL,
            f"Requested {_mode(spot)}GPU ({gpu_model or 'none'}) pricing for Accelerator compute class "
            f"({machine_type}) is not available in {_region(table)} region.",
        ),)
    else:
        premium, notes = _resource_cost(table, cls, resources, spot, machine_type, local_ssd=True)
        premium += gpu_rate * gpu_count
    machine = machine_price(machine_type, spot, table)
    return Quote(premium + machine.hourly_cost, notes + machine.diagnostics)


def _price_gpu_pod(resources, gpu_count, gpu_model, cls, machine_type, spot, table) -> Quote:
    gpu_rate = table.gpu_rate(cls, spot, gpu_model)
    if gpu_rate is None:
        return Quote(0.0, (Diagnostic(
            DiagnosticKind.UNKNOWN_GPU_MODEL,
            f"Requested {_mode(spot)}GPU ({gpu_model or 'none'}) pricing is not available "
            f"in {_region(table)} region.",
        ),))
    cost, notes = _resource_cost(table, cls, resources, spot, machine_type, local_ssd=True)
    return Quote(cost + gpu_rate * gpu_count, notes)


PRICERS: Dict[ComputeClass, _PriceFn] = {
    ComputeClass.GENERAL_PURPOSE: _price_by_ratio_class,
    ComputeClass.BALANCED: _price_by_ratio_class,
    ComputeClass.SCALEOUT: _price_by_ratio_class,
    ComputeClass.SCALEOUT_ARM: _price_by_ratio_class,
    ComputeClass.PERFORMANCE: _price_performance,
    ComputeClass.ACCELERATOR: _price_accelerator,
    ComputeClass.GPU_POD: _price_gpu_pod,
}

_missing = set(ComputeClass) - set(PRICERS)
if _missing:
    raise RuntimeError(f"No pricing rule for compute classes: {sorted(c.name for c in _missing)}")


def quote(
    resources: ResourceTriple,
    gpu_count: int,
    gpu_model: str,
    compute_class: ComputeClass,
    machine_type: str,
    spot: bool,
    table: PriceTable,
) -> Quote:
    """
    Часовая стоимость workload'а в выбранном классе.

    Отсутствующие ставки не ошибка: считаем с нулём и на каждую
    возвращаем замечание. Результат всегда >= 0.
    """
    q = PRICERS[compute_class](resources, gpu_count, gpu_model, compute_class, machine_type, spot, table)
    if not q.hourly_cost >= 0:
        return Quote(0.0, q.diagnostics)
    return q


def price(
    resources: ResourceTriple,
    gpu_count: int,
    gpu_model: str,
    compute_class: ComputeClass,
    machine_type: str,
    spot: bool,
    table: PriceTable,
    logger: Optional[logging.Logger] = None,
) -> float:
    """quote() с выводом замечаний в лог."""
    q = quote(resources, gpu_count, gpu_model, compute_class, machine_type, spot, table)
    emit(q.diagnostics, logger or log)
    return q.hourly_cost
