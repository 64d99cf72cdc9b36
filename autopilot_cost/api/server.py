# autopilot_cost/api/server.py
from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ..config import ConfigError, Settings, load_settings
from ..model.entities import ResourceTriple
from ..model.prices import PriceTable
from ..sim.aggregate import estimate_cluster
from ..sim.classify import classify
from ..sim.costs import empty_price_table, load_price_table
from ..sim.diagnostics import emit
from ..sim.normalize import NormalizationPolicy, normalize
from ..sim.pricing import quote
from ..snapshot.io import estimate_to_dict, snapshot_from_dict
from ..types import ComputeClass, CpuMillis, Mebibytes
from .schema import (
    ClassifyRequest, ClassifyResponse, EstimateRequest, EstimateResponse, HealthResponse,
    NormalizeRequest, PriceRequest, PriceResponse, ResourcesModel,
)

app = FastAPI(title="Autopilot cost estimator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

log = logging.getLogger("uvicorn")

# --- PATHS ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.ini"
DEFAULT_PRICES_PATH = PROJECT_ROOT / "prices.json"


# --- Estimator state ---

class EstimatorManager:
    """Настройки и прайс, с которыми работают все запросы."""

    def __init__(self):
        self.settings: Settings = Settings()
        self.prices: PriceTable = empty_price_table()

    def configure(self, settings: Settings, prices: PriceTable) -> None:
        self.settings = settings
        self.prices = prices

    def load(self, config_path: Path, prices_path: Path) -> None:
        """
        Загрузка с диска. Отсутствующий файл не фатален: остаются
        нулевые пороги/ставки, о чём пишем warning. Битый файл -- ошибка.
        """
        if config_path.exists():
            self.settings = load_settings(config_path)
        else:
            log.warning(f"Config {config_path} not found, using zero thresholds")
            self.settings = Settings()

        if prices_path.exists():
            self.prices = load_price_table(prices_path)
        else:
            log.warning(f"Price table {prices_path} not found, every price will be 0")
            self.prices = empty_price_table(self.settings.region)


manager = EstimatorManager()


@app.on_event("startup")
async def startup_event() -> None:
    config_path = Path(os.environ.get("AP_COST_CONFIG", DEFAULT_CONFIG_PATH))
    prices_path = Path(os.environ.get("AP_COST_PRICES", DEFAULT_PRICES_PATH))
    try:
        manager.load(config_path, prices_path)
    except (ConfigError, OSError) as e:
        log.error(f"Failed to load estimator state: {e}")
        raise


# --- Helpers ---

def _parse_class(name: str) -> ComputeClass:
    try:
        return ComputeClass.parse(name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


# --- Endpoints ---

@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        region=manager.prices.region or manager.settings.region,
        price_entries=manager.prices.entry_count(),
    )


@app.post("/normalize", response_model=ResourcesModel)
def normalize_endpoint(req: NormalizeRequest) -> ResourcesModel:
    policy = manager.settings.normalization
    if req.memory_follows_cpu is not None:
        policy = NormalizationPolicy(
            cpu_min_m=policy.cpu_min_m,
            memory_min_mib=policy.memory_min_mib,
            storage_min_mib=policy.storage_min_mib,
            cpu_step_m=policy.cpu_step_m,
            memory_follows_cpu=req.memory_follows_cpu,
        )
    r = normalize(req.cpu_m, req.memory_mib, req.storage_mib, policy)
    return ResourcesModel(cpu_m=r.cpu_m, memory_mib=r.memory_mib, storage_mib=r.storage_mib)


@app.post("/classify", response_model=ClassifyResponse)
def classify_endpoint(req: ClassifyRequest) -> ClassifyResponse:
    settings = manager.settings
    is_arm = req.is_arm if req.is_arm is not None else settings.classifier.is_arm(req.machine_type)
    result = classify(
        req.workload,
        req.machine_type,
        req.cpu_m,
        req.memory_mib,
        req.gpu_count,
        req.gpu_model,
        is_arm,
        settings.thresholds,
        settings.classifier,
    )
    emit(result.diagnostics, log)
    return ClassifyResponse(
        compute_class=result.compute_class.display_name,
        ratio=_finite(result.ratio),
        diagnostics=[str(d) for d in result.diagnostics],
    )


@app.post("/price", response_model=PriceResponse)
def price_endpoint(req: PriceRequest) -> PriceResponse:
    resources = ResourceTriple(
        cpu_m=CpuMillis(req.cpu_m),
        memory_mib=Mebibytes(req.memory_mib),
        storage_mib=Mebibytes(req.storage_mib),
    )
    q = quote(
        resources,
        req.gpu_count,
        req.gpu_model,
        _parse_class(req.compute_class),
        req.machine_type,
        req.spot,
        manager.prices,
    )
    emit(q.diagnostics, log)
    return PriceResponse(hourly_cost=q.hourly_cost, diagnostics=[str(d) for d in q.diagnostics])


@app.post("/estimate", response_model=EstimateResponse)
def estimate_endpoint(req: EstimateRequest) -> EstimateResponse:
    snap = snapshot_from_dict(req.model_dump())
    if not snap.nodes and not snap.pods:
        raise HTTPException(status_code=422, detail="Snapshot has neither nodes nor pods")
    estimate = estimate_cluster(snap.nodes, snap.pods, manager.settings, manager.prices)
    return EstimateResponse(**estimate_to_dict(estimate))
