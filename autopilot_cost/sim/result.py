# autopilot_cost/sim/result.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..config import Fees
from ..model.entities import Node, Workload
from ..types import NodeName


@dataclass(frozen=True)
class ClusterTotals:
    """
    Итоги по кластеру, USD в час.

    Spot-workload'ы в скидки за commitment не входят.
    """
    on_demand_usd: float
    spot_usd: float
    cluster_fee_usd: float
    total_usd: float
    one_year_commit_usd: float
    three_year_commit_usd: float


@dataclass
class ClusterEstimate:
    """То, что уходит в JSON-выгрузку / API."""
    nodes: Dict[NodeName, Node]
    workloads: List[Workload]
    totals: ClusterTotals
    # workload'ы, для которых не нашлось ноды (в итоги входят, в ноды -- нет)
    orphans: List[Workload] = field(default_factory=list)


def compute_totals(workloads: List[Workload], fees: Fees) -> ClusterTotals:
    on_demand = sum(w.hourly_cost for w in workloads if not w.spot)
    spot = sum(w.hourly_cost for w in workloads if w.spot)
    fee = fees.cluster_fee
    return ClusterTotals(
        on_demand_usd=on_demand,
        spot_usd=spot,
        cluster_fee_usd=fee,
        total_usd=on_demand + spot + fee,
        one_year_commit_usd=spot + on_demand * fees.one_year_discount + fee,
        three_year_commit_usd=spot + on_demand * fees.three_year_discount + fee,
    )
