# run_autopilot_cost_server.py
import logging
import os
from pathlib import Path

import uvicorn

from autopilot_cost.api.server import DEFAULT_CONFIG_PATH, DEFAULT_PRICES_PATH, EstimatorManager
from autopilot_cost.sim.aggregate import estimate_cluster
from autopilot_cost.snapshot.io import load_snapshot_from_file, save_estimate_to_file

# Настраиваем логирование для лаунчера
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("launcher")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def export_estimate(snapshot_path: Path, out_path: Path, config_path: Path, prices_path: Path) -> Path:
    """
    Считает снапшот с диска и сохраняет оценку в JSON рядом
    (или по пути из AP_COST_EXPORT).
    """
    state = EstimatorManager()
    state.load(config_path, prices_path)
    snap = load_snapshot_from_file(snapshot_path)
    estimate = estimate_cluster(snap.nodes, snap.pods, state.settings, state.prices)
    save_estimate_to_file(estimate, out_path)
    log.info("Estimate for %s saved to: %s", snapshot_path, out_path)
    return out_path


if __name__ == "__main__":
    # Всё управление через окружение:
    #   AP_COST_CONFIG / AP_COST_PRICES читает сам сервер при старте
    host = os.environ.get("AP_COST_HOST", "0.0.0.0")
    port = int(os.environ.get("AP_COST_PORT", "8000"))
    reload = _env_flag("AP_COST_RELOAD", False)
    config_path = Path(os.environ.get("AP_COST_CONFIG", DEFAULT_CONFIG_PATH))
    prices_path = Path(os.environ.get("AP_COST_PRICES", DEFAULT_PRICES_PATH))

    # Если задан снапшот, сначала выгружаем оценку по нему
    snapshot = os.environ.get("AP_COST_SNAPSHOT")
    if snapshot:
        snapshot_path = Path(snapshot)
        out_path = Path(os.environ.get("AP_COST_EXPORT") or snapshot_path.with_suffix(".estimate.json"))
        try:
            export_estimate(snapshot_path, out_path, config_path, prices_path)
        except (OSError, ValueError) as e:
            # сервер поднимаем, даже если выгрузка не удалась
            log.error(f"Failed to export estimate: {e}")

    log.info("Starting estimator on %s:%d (config=%s, prices=%s)", host, port, config_path, prices_path)
    uvicorn.run(
        "autopilot_cost.api.server:app",
        host=host,
        port=port,
        reload=reload,
    )
