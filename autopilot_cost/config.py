# autopilot_cost/config.py
from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .model.thresholds import (
    ClassificationThresholds, ClassifierSettings, ClassLimits, RatioBand, ResourceBand
)
from .sim.normalize import NormalizationPolicy
from .types import ComputeClass

log = logging.getLogger(__name__)

GENERAL_SECTION = "general"
UNNAMED_SECTION = "DEFAULT"

# Плата за кластер в час, если в конфиге ничего нет
CLUSTER_FEE = 0.1

# GPU-модель -> суффикс ключей в секции [limits]
GPU_MODEL_KEYS: Dict[str, str] = {
    "nvidia-tesla-t4": "t4",
    "nvidia-l4": "l4",
    "nvidia-tesla-a100": "a100_40",
    "nvidia-a100-80gb": "a100_80",
}
H100_MODEL = "nvidia-h100-80gb"

# Класс -> префикс ключей в [ratios] / [limits]
_CLASS_KEYS: Dict[ComputeClass, str] = {
    ComputeClass.GENERAL_PURPOSE: "generalpurpose",
    ComputeClass.BALANCED: "balanced",
    ComputeClass.SCALEOUT: "scaleout",
    ComputeClass.SCALEOUT_ARM: "scaleout_arm",
    ComputeClass.PERFORMANCE: "performance",
}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Fees:
    cluster_fee: float = CLUSTER_FEE
    one_year_discount: float = 1.0
    three_year_discount: float = 1.0


@dataclass(frozen=True)
class Settings:
    """Всё, что читается из config.ini. Передаётся явно, глобального состояния нет."""
    thresholds: ClassificationThresholds = field(default_factory=ClassificationThresholds)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    normalization: NormalizationPolicy = field(default_factory=NormalizationPolicy)
    fees: Fees = field(default_factory=Fees)
    region: str = ""
    autopilot_sku: str = ""
    gce_sku: str = ""


# ---------------------------------------------------------------------
# Чтение значений
# ---------------------------------------------------------------------


class _Section:
    """Обёртка над секцией configparser: отсутствующий ключ -> default, мусор -> ConfigError."""

    def __init__(self, parser: configparser.ConfigParser, name: str):
        self.parser = parser
        self.name = name

    def has(self, key: str) -> bool:
        return self.parser.has_option(self.name, key) and self.parser.get(self.name, key).strip() != ""

    def get_str(self, key: str, default: str = "") -> str:
        if not self.parser.has_option(self.name, key):
            return default
        return self.parser.get(self.name, key).strip()

    def get_float(self, key: str, default: float = 0.0) -> float:
        if not self.has(key):
            return default
        try:
            return self.parser.getfloat(self.name, key)
        except ValueError:
            raise ConfigError(
                f"[{self.name}] {key}: expected a number, got {self.parser.get(self.name, key)!r}"
            ) from None

    def get_int(self, key: str, default: int = 0) -> int:
        return int(self.get_float(key, float(default)))

    def get_bool(self, key: str, default: bool = False) -> bool:
        if not self.has(key):
            return default
        try:
            return self.parser.getboolean(self.name, key)
        except ValueError:
            raise ConfigError(
                f"[{self.name}] {key}: expected a boolean, got {self.parser.get(self.name, key)!r}"
            ) from None

    def get_list(self, key: str) -> tuple:
        return tuple(p.strip() for p in self.get_str(key).split(",") if p.strip())


def _new_parser() -> configparser.ConfigParser:
    # у go-ini безымянная секция называется DEFAULT, поэтому настоящую
    # секцию по умолчанию configparser'а уводим под другое имя
    return configparser.ConfigParser(interpolation=None, default_section="__defaults__")


def _merge_unnamed_section(parser: configparser.ConfigParser) -> None:
    """Ключи из [DEFAULT] попадают в [general], явные значения [general] главнее."""
    if not parser.has_section(UNNAMED_SECTION):
        return
    if not parser.has_section(GENERAL_SECTION):
        parser.add_section(GENERAL_SECTION)
    for key, value in parser.items(UNNAMED_SECTION):
        if not parser.has_option(GENERAL_SECTION, key):
            parser.set(GENERAL_SECTION, key, value)


# ---------------------------------------------------------------------
# Сборка Settings
# ---------------------------------------------------------------------


def _class_limits(ratios: _Section, limits: _Section, key: str, ratio_key: Optional[str] = None) -> ClassLimits:
    rk = ratio_key or key
    return ClassLimits(
        ratio=RatioBand(ratios.get_float(f"{rk}_min"), ratios.get_float(f"{rk}_max")),
        cpu_m_max=limits.get_int(f"{key}_mcpu_max"),
        memory_mib_max=limits.get_int(f"{key}_memory_max"),
    )


def build_thresholds(ratios: _Section, limits: _Section) -> ClassificationThresholds:
    classes: Dict[ComputeClass, ClassLimits] = {}
    for cls, key in _CLASS_KEYS.items():
        ratio_key = key
        # у arm своей полосы может не быть -- тогда полоса scale-out
        if cls is ComputeClass.SCALEOUT_ARM and not ratios.has(f"{key}_min"):
            ratio_key = _CLASS_KEYS[ComputeClass.SCALEOUT]
        classes[cls] = _class_limits(ratios, limits, key, ratio_key)

    gpu_pod_bands: Dict[str, ResourceBand] = {}
    accelerator_bands: Dict[str, ResourceBand] = {}
    accel_cpu_min = limits.get_int("accelerator_mcpu_min")
    accel_mem_min = limits.get_int("accelerator_memory_min")
    for model, key in GPU_MODEL_KEYS.items():
        gpu_pod_bands[model] = ResourceBand(
            cpu_m_min=limits.get_int(f"gpupod_{key}_mcpu_min"),
            cpu_m_max=limits.get_int(f"gpupod_{key}_mcpu_max"),
            memory_mib_min=limits.get_int(f"gpupod_{key}_memory_min"),
            memory_mib_max=limits.get_int(f"gpupod_{key}_memory_max"),
        )
        # Accelerator: нижняя граница общая, верхняя как у GPU Pod той же модели
        accelerator_bands[model] = ResourceBand(
            cpu_m_min=accel_cpu_min,
            cpu_m_max=limits.get_int(f"gpupod_{key}_mcpu_max"),
            memory_mib_min=accel_mem_min,
            memory_mib_max=limits.get_int(f"gpupod_{key}_memory_max"),
        )
    accelerator_bands[H100_MODEL] = ResourceBand(
        cpu_m_min=accel_cpu_min,
        cpu_m_max=limits.get_int("accelerator_h100_80_mcpu_max"),
        memory_mib_min=accel_mem_min,
        memory_mib_max=limits.get_int("accelerator_h100_80_memory_max"),
    )

    return ClassificationThresholds(
        classes=classes,
        gpu_pod_bands=gpu_pod_bands,
        accelerator_bands=accelerator_bands,
    )


def settings_from_parser(parser: configparser.ConfigParser) -> Settings:
    _merge_unnamed_section(parser)
    general = _Section(parser, GENERAL_SECTION)
    ratios = _Section(parser, "ratios")
    limits = _Section(parser, "limits")
    fees = _Section(parser, "fees")
    discounts = _Section(parser, "discounts")
    normalization = _Section(parser, "normalization")

    return Settings(
        thresholds=build_thresholds(ratios, limits),
        classifier=ClassifierSettings(
            compute_optimized_prefixes=general.get_list("gce_compute_optimized_prefixed"),
            accelerator_optimized_prefixes=general.get_list("gce_accelerator_optimized_prefixed"),
            arm64_prefix=general.get_str("gce_arm64_prefix"),
            flagship_gpu=general.get_str("nvidia_h100_identifier"),
        ),
        normalization=NormalizationPolicy(
            memory_follows_cpu=normalization.get_bool("memory_follows_cpu", False),
        ),
        fees=Fees(
            cluster_fee=fees.get_float("cluster_fee", CLUSTER_FEE),
            one_year_discount=discounts.get_float("oneyear_commit", 1.0),
            three_year_discount=discounts.get_float("threeyear_commit", 1.0),
        ),
        region=general.get_str("region"),
        autopilot_sku=general.get_str("autopilot_sku"),
        gce_sku=general.get_str("gce_sku"),
    )


def settings_from_mapping(data: Mapping[str, Mapping[str, str]]) -> Settings:
    """
    Settings из словаря секций (как у configparser).
    Секция "DEFAULT" сливается в "general".
    """
    parser = _new_parser()
    parser.read_dict(data)
    return settings_from_parser(parser)


def parse_settings(text: str) -> Settings:
    """Разбор текста config.ini. Ключи до первой секции попадают в [general]."""
    parser = _new_parser()
    body = text
    first = next(
        (ln.strip() for ln in text.splitlines() if ln.strip() and not ln.strip().startswith(("#", ";"))),
        "",
    )
    if not first.startswith("["):
        body = f"[{GENERAL_SECTION}]\n{text}"
    try:
        parser.read_string(body)
    except configparser.Error as e:
        raise ConfigError(f"Malformed configuration: {e}") from e
    return settings_from_parser(parser)


def load_settings(path: Union[str, Path]) -> Settings:
    p = Path(path)
    settings = parse_settings(p.read_text("utf-8"))
    log.info("Loaded settings from %s (region=%s)", p, settings.region or "-")
    return settings
