# autopilot_cost/sim/diagnostics.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional


class DiagnosticKind(enum.Enum):
    MISSING_PRICE = "missing_price"
    UNKNOWN_GPU_MODEL = "unknown_gpu_model"
    UNKNOWN_MACHINE_FAMILY = "unknown_machine_family"
    MALFORMED_MACHINE_TYPE = "malformed_machine_type"
    OUT_OF_RANGE = "out_of_range"
    NO_MATCHING_CLASS = "no_matching_class"
    SPOT_UNAVAILABLE = "spot_unavailable"
    DEGENERATE_INPUT = "degenerate_input"


# Ожидаемые ситуации, о которых достаточно INFO
_INFO_KINDS = frozenset({DiagnosticKind.SPOT_UNAVAILABLE})


@dataclass(frozen=True)
class Diagnostic:
    """
    Замечание ядра расчёта. Ядро ничего не пишет в лог само,
    а возвращает такие объекты вместе с результатом.
    """
    kind: DiagnosticKind
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


def emit(diagnostics: Iterable[Diagnostic], logger: Optional[logging.Logger] = None) -> None:
    """Сбросить накопленные замечания в лог."""
    logger = logger or logging.getLogger(__name__)
    for d in diagnostics:
        level = logging.INFO if d.kind in _INFO_KINDS else logging.WARNING
        logger.log(level, "%s", d.message)
