# autopilot_cost/types.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NewType, Optional


# ID-шники / имена
NodeName = NewType("NodeName", str)
WorkloadName = NewType("WorkloadName", str)
MachineType = NewType("MachineType", str)
GpuModel = NewType("GpuModel", str)

# Ресурсы (единицы биллинга)
CpuMillis = NewType("CpuMillis", int)  # milliCPU
Mebibytes = NewType("Mebibytes", int)  # MiB

# Деньги
UsdPerHour = NewType("UsdPerHour", float)


class ComputeClass(enum.Enum):
    """Закрытый набор compute class'ов. Других классов не бывает."""

    GENERAL_PURPOSE = "General-purpose"
    BALANCED = "Balanced"
    SCALEOUT = "Scale-out"
    SCALEOUT_ARM = "Scale-out arm64"
    PERFORMANCE = "Performance"
    ACCELERATOR = "Accelerator"
    GPU_POD = "GPU Pod"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: str) -> "ComputeClass":
        """Имя enum'а или display name, без учёта регистра и разделителей."""
        wanted = _squash(name)
        for member in cls:
            if wanted in (_squash(member.name), _squash(member.value)):
                return member
        raise ValueError(f"Unknown compute class: {name!r}")


class ResourceKind(enum.Enum):
    CPU = "cpu"
    MEMORY = "memory"
    STORAGE = "storage"
    GPU = "gpu"


def _squash(s: str) -> str:
    return "".join(ch for ch in s.lower() if ch.isalnum())


@dataclass(frozen=True)
class PriceKey:
    """
    Ключ для поиска ставки в прайсе.
    compute_class=None -- ставка, не зависящая от класса (ephemeral storage).
    """
    compute_class: Optional[ComputeClass]
    spot: bool
    kind: ResourceKind
