# autopilot_cost/sim/normalize.py
from __future__ import annotations

from dataclasses import dataclass

from ..model.entities import ResourceTriple
from ..types import CpuMillis, Mebibytes

# Минимумы модели биллинга (не пользовательские настройки)
CPU_MIN_M = 50
MEMORY_MIN_MIB = 52
STORAGE_MIN_MIB = 10

# Шаг округления mCPU
CPU_STEP_M = 50


@dataclass(frozen=True)
class NormalizationPolicy:
    """
    Параметры нормализации.

    memory_follows_cpu: если после округления cpu больше памяти,
    память поднимается до значения cpu (минимальный ratio 1:1).
    В одной версии прайсинга правило есть, в другой его нет,
    поэтому это явный флаг, а не зашитое поведение.
    """
    cpu_min_m: int = CPU_MIN_M
    memory_min_mib: int = MEMORY_MIN_MIB
    storage_min_mib: int = STORAGE_MIN_MIB
    cpu_step_m: int = CPU_STEP_M
    memory_follows_cpu: bool = False


DEFAULT_POLICY = NormalizationPolicy()


def round_up(value: int, step: int) -> int:
    missing = value % step
    if missing == 0:
        return value
    return value + (step - missing)


def normalize(
    cpu_m: int,
    memory_mib: int,
    storage_mib: int,
    policy: NormalizationPolicy = DEFAULT_POLICY,
) -> ResourceTriple:
    """
    Приводит сырые ресурсы к биллинговым единицам:
      - минимумы по cpu/памяти/диску;
      - cpu вверх до кратного шагу;
      - опционально память не меньше cpu.
    Вход неотрицательный, это гарантирует вызывающий.
    """
    cpu = max(int(cpu_m), policy.cpu_min_m)
    memory = max(int(memory_mib), policy.memory_min_mib)
    storage = max(int(storage_mib), policy.storage_min_mib)

    cpu = round_up(cpu, policy.cpu_step_m)

    if policy.memory_follows_cpu and cpu > memory:
        memory = cpu

    return ResourceTriple(
        cpu_m=CpuMillis(cpu),
        memory_mib=Mebibytes(memory),
        storage_mib=Mebibytes(storage),
    )


def normalize_triple(resources: ResourceTriple, policy: NormalizationPolicy = DEFAULT_POLICY) -> ResourceTriple:
    return normalize(resources.cpu_m, resources.memory_mib, resources.storage_mib, policy)
