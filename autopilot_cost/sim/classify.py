# autopilot_cost/sim/classify.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..model.thresholds import ClassificationThresholds, ClassifierSettings
from ..types import ComputeClass
from .diagnostics import Diagnostic, DiagnosticKind, emit

log = logging.getLogger(__name__)

# Порядок проверки классов, выбираемых по ratio. Порядок == приоритет.
RATIO_CLASS_ORDER: Tuple[ComputeClass, ...] = (
    ComputeClass.GENERAL_PURPOSE,
    ComputeClass.SCALEOUT,
    ComputeClass.BALANCED,
)

FALLBACK_CLASS = ComputeClass.GENERAL_PURPOSE


@dataclass(frozen=True)
class Classification:
    compute_class: ComputeClass
    ratio: float
    diagnostics: Tuple[Diagnostic, ...] = ()


def memory_cpu_ratio(cpu_m: int, memory_mib: int) -> float:
    """ceil(memory / cpu). Для cpu <= 0 -- бесконечность."""
    if cpu_m <= 0:
        return math.inf
    return float(math.ceil(memory_mib / cpu_m))


def classify(
    workload: str,
    machine_type: str,
    cpu_m: int,
    memory_mib: int,
    gpu_count: int,
    gpu_model: str,
    is_arm: bool,
    thresholds: ClassificationThresholds,
    settings: ClassifierSettings,
) -> Classification:
    """
    Выбор compute class'а для workload'а. Первое совпадение побеждает:

      1. compute-optimized семейство машины -> Performance
      2. флагманская GPU (H100) -> Performance
      3. accelerator-optimized семейство -> Accelerator
      4. есть GPU -> GPU Pod
      5. arm64 -> Scale-out arm64
      6. General-purpose / Scale-out / Balanced по ratio и потолкам
      7. иначе General-purpose

    Проверки диапазонов в пп. 2-5 только добавляют замечания и класс
    не меняют. Функция тотальная: всегда возвращает один из классов.
    """
    notes: List[Diagnostic] = []
    ratio = memory_cpu_ratio(cpu_m, memory_mib)
    if math.isinf(ratio):
        notes.append(Diagnostic(
            DiagnosticKind.DEGENERATE_INPUT,
            f"Workload ({workload}) has no CPU ({cpu_m} mCPU); memory:cpu ratio is undefined.",
        ))

    def done(cls: ComputeClass) -> Classification:
        return Classification(compute_class=cls, ratio=ratio, diagnostics=tuple(notes))

    if settings.is_compute_optimized(machine_type):
        return done(ComputeClass.PERFORMANCE)

    if settings.is_flagship_gpu(gpu_model):
        perf = thresholds.limits(ComputeClass.PERFORMANCE)
        if not perf.admits(ratio, cpu_m, memory_mib):
            notes.append(_out_of_range(
                f"Requested memory or CPU out of acceptable range for Performance compute class "
                f"({machine_type}) workload ({workload})."
            ))
        return done(ComputeClass.PERFORMANCE)

    if settings.is_accelerator_optimized(machine_type):
        band = thresholds.accelerator_bands.get(gpu_model)
        if band is not None and not band.contains(cpu_m, memory_mib):
            notes.append(_out_of_range(
                f"Requested memory or CPU out of acceptable range for {machine_type} Accelerator "
                f"compute class ({gpu_model}) workload ({workload})."
            ))
        return done(ComputeClass.ACCELERATOR)

    if gpu_count > 0:
        band = thresholds.gpu_pod_bands.get(gpu_model)
        if band is not None and not band.contains(cpu_m, memory_mib):
            notes.append(_out_of_range(
                f"Requested memory or CPU out of acceptable range for {gpu_model} GPU workload ({workload})."
            ))
        return done(ComputeClass.GPU_POD)

    if is_arm:
        arm = thresholds.limits(ComputeClass.SCALEOUT_ARM)
        if not arm.admits(ratio, cpu_m, memory_mib):
            notes.append(_out_of_range(
                f"Requesting arm64 but requested mCPU ({cpu_m}), memory ({memory_mib}) or "
                f"ratio ({ratio:g}) are out of accepted range ({workload})."
            ))
        return done(ComputeClass.SCALEOUT_ARM)

    for cls in RATIO_CLASS_ORDER:
        if thresholds.limits(cls).admits(ratio, cpu_m, memory_mib):
            return done(cls)

    notes.append(Diagnostic(
        DiagnosticKind.NO_MATCHING_CLASS,
        f"Couldn't find a matching compute class for {workload}. "
        f"Defaulting to '{FALLBACK_CLASS.display_name}'. Please check the pricing manually.",
    ))
    return done(FALLBACK_CLASS)


def decide_class(
    workload: str,
    machine_type: str,
    cpu_m: int,
    memory_mib: int,
    gpu_count: int,
    gpu_model: str,
    is_arm: bool,
    thresholds: ClassificationThresholds,
    settings: ClassifierSettings,
    logger: Optional[logging.Logger] = None,
) -> ComputeClass:
    """Как classify(), но замечания сразу уходят в лог."""
    result = classify(
        workload, machine_type, cpu_m, memory_mib, gpu_count, gpu_model, is_arm,
        thresholds, settings,
    )
    emit(result.diagnostics, logger or log)
    return result.compute_class


def _out_of_range(message: str) -> Diagnostic:
    return Diagnostic(DiagnosticKind.OUT_OF_RANGE, message)

