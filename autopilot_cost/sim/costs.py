# autopilot_cost/sim/costs.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..config import ConfigError
from ..model.prices import GpuKey, MachineKey, PriceTable
from ..types import ComputeClass, PriceKey, ResourceKind

log = logging.getLogger(__name__)

_MODES = {"on_demand": False, "spot": True}
_CLASS_KINDS = {
    "cpu": ResourceKind.CPU,
    "memory": ResourceKind.MEMORY,
    "storage": ResourceKind.STORAGE,
}
_MACHINE_KINDS = {
    "cpu": ResourceKind.CPU,
    "memory": ResourceKind.MEMORY,
}


def region_from_location(location: str) -> str:
    """us-central1-a (зона) -> us-central1 (регион)."""
    parts = (location or "").split("-")
    if len(parts) > 2:
        return "-".join(parts[:-1])
    return location or ""


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{where}: expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: expected a number, got {value!r}") from None


def _modes(block: Any, where: str) -> Dict[bool, Mapping[str, Any]]:
    if not isinstance(block, Mapping):
        raise ConfigError(f"{where}: expected an object with on_demand/spot")
    result: Dict[bool, Mapping[str, Any]] = {}
    for mode, values in block.items():
        if mode not in _MODES:
            raise ConfigError(f"{where}: unknown pricing mode {mode!r}")
        if not isinstance(values, Mapping):
            raise ConfigError(f"{where}.{mode}: expected an object")
        result[_MODES[mode]] = values
    return result


def _parse_class(name: str, where: str) -> ComputeClass:
    try:
        return ComputeClass.parse(name)
    except ValueError as e:
        raise ConfigError(f"{where}: {e}") from None


def price_table_from_dict(data: Mapping[str, Any]) -> PriceTable:
    """
    Прайс из JSON-словаря.

    Ожидаемый формат:
    {
      "region": "us-central1",
      "storage": 0.0000706,                      # или {"on_demand": .., "spot": ..}
      "classes": {"general-purpose": {"on_demand": {"cpu": .., "memory": ..}, "spot": {...}}},
      "gpus": {"gpu-pod": {"on_demand": {"nvidia-l4": 0.6783}}},
      "machines": {"c2": {"on_demand": {"cpu": .., "memory": ..}}}
    }
    Для Performance/Accelerator/GPU Pod "storage" в классе -- это local SSD.
    """
    rates: Dict[PriceKey, float] = {}
    machine_rates: Dict[MachineKey, float] = {}
    gpu_rates: Dict[GpuKey, float] = {}

    storage = data.get("storage")
    if isinstance(storage, Mapping):
        for spot, value in ((s, storage.get(m)) for m, s in _MODES.items()):
            if value is not None:
                rates[PriceKey(None, spot, ResourceKind.STORAGE)] = _number(value, "storage")
    elif storage is not None:
        value = _number(storage, "storage")
        rates[PriceKey(None, False, ResourceKind.STORAGE)] = value
        rates[PriceKey(None, True, ResourceKind.STORAGE)] = value

    for class_name, block in (data.get("classes") or {}).items():
        where = f"classes.{class_name}"
        cls = _parse_class(class_name, where)
        for spot, values in _modes(block, where).items():
            for kind_name, value in values.items():
                kind = _CLASS_KINDS.get(kind_name)
                if kind is None:
                    raise ConfigError(f"{where}: unknown resource {kind_name!r}")
                rates[PriceKey(cls, spot, kind)] = _number(value, f"{where}.{kind_name}")

    for class_name, block in (data.get("gpus") or {}).items():
        where = f"gpus.{class_name}"
        cls = _parse_class(class_name, where)
        for spot, values in _modes(block, where).items():
            for model, value in values.items():
                gpu_rates[GpuKey(cls, spot, str(model))] = _number(value, f"{where}.{model}")

    for family, block in (data.get("machines") or {}).items():
        where = f"machines.{family}"
        for spot, values in _modes(block, where).items():
            for kind_name, value in values.items():
                kind = _MACHINE_KINDS.get(kind_name)
                if kind is None:
                    raise ConfigError(f"{where}: unknown resource {kind_name!r}")
                machine_rates[MachineKey(str(family).lower(), spot, kind)] = _number(value, f"{where}.{kind_name}")

    return PriceTable(
        region=region_from_location(str(data.get("region") or "")),
        rates=rates,
        machine_rates=machine_rates,
        gpu_rates=gpu_rates,
    )


def price_table_to_dict(table: PriceTable) -> Dict[str, Any]:
    """Обратное преобразование, для выгрузки в JSON."""
    def mode(spot: bool) -> str:
        return "spot" if spot else "on_demand"

    classes: Dict[str, Dict[str, Dict[str, float]]] = {}
    storage: Dict[str, float] = {}
    for key, value in table.rates.items():
        if key.compute_class is None:
            storage[mode(key.spot)] = value
            continue
        classes.setdefault(key.compute_class.name.lower(), {}).setdefault(mode(key.spot), {})[key.kind.value] = value

    gpus: Dict[str, Dict[str, Dict[str, float]]] = {}
    for key, value in table.gpu_rates.items():
        gpus.setdefault(key.compute_class.name.lower(), {}).setdefault(mode(key.spot), {})[key.model] = value

    machines: Dict[str, Dict[str, Dict[str, float]]] = {}
    for key, value in table.machine_rates.items():
        machines.setdefault(key.family, {}).setdefault(mode(key.spot), {})[key.kind.value] = value

    return {
        "region": table.region,
        "storage": storage,
        "classes": classes,
        "gpus": gpus,
        "machines": machines,
    }


def load_price_table(path: Union[str, Path]) -> PriceTable:
    """Загрузка прайса из JSON-файла."""
    p = Path(path)
    try:
        data = json.loads(p.read_text("utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed price table {p}: {e}") from e
    if not isinstance(data, Mapping):
        raise ConfigError(f"Malformed price table {p}: expected a JSON object")
    table = price_table_from_dict(data)
    log.info(
        "Loaded pricing from %s for region %s (%d entries)",
        p, table.region or "-", table.entry_count(),
    )
    return table


def empty_price_table(region: Optional[str] = None) -> PriceTable:
    return PriceTable(region=region or "")
