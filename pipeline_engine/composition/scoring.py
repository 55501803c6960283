# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Plan Scorer

Composite score = compatibility, price efficiency and reliability, weighted.
Weights and the price ceiling are configuration, not derived values.
"""

from dataclasses import dataclass
from typing import Sequence

from .models import WorkflowDescriptor

# Prices are integer micro-units (6 decimals)
PRICE_UNIT = 1_000_000


@dataclass(frozen=True)
class ScoringWeights:
    compatibility: float = 0.4
    price: float = 0.3
    reliability: float = 0.3
    reference_max_price: int = PRICE_UNIT

    @classmethod
    def from_config(cls, config) -> "ScoringWeights":
        return cls(
            compatibility=config.weight_compatibility,
            price=config.weight_price,
            reliability=config.weight_reliability,
            reference_max_price=config.reference_max_price,
        )


@dataclass(frozen=True)
class PlanScore:
    avg_compatibility: float
    price_efficiency: float
    reliability: float
    score: float


def average_compatibility(pair_scores: Sequence[float]) -> float:
    """Mean pairwise score; a single-step plan has no pairs and scores 1.0"""
    if not pair_scores:
        return 1.0
    return sum(pair_scores) / len(pair_scores)


def price_efficiency(total_price: int, reference_max_price: int) -> float:
    if reference_max_price <= 0:
        return 0.0
    return max(0.0, 1 - total_price / reference_max_price)


def reliability(selected: Sequence[WorkflowDescriptor]) -> float:
    """Mean of total_executions relative to the busiest selected workflow"""
    if not selected:
        return 0.0
    max_executions = max(max(w.total_executions for w in selected), 1)
    return sum(w.total_executions / max_executions for w in selected) / len(selected)


def score_plan(
    pair_scores: Sequence[float],
    total_price: int,
    selected: Sequence[WorkflowDescriptor],
    weights: ScoringWeights = ScoringWeights(),
) -> PlanScore:
    compat = average_compatibility(pair_scores)
    price = price_efficiency(total_price, weights.reference_max_price)
    rel = reliability(selected)

    composite = (
        weights.compatibility * compat
        + weights.price * price
        + weights.reliability * rel
    )

    return PlanScore(
        avg_compatibility=compat,
        price_efficiency=price,
        reliability=rel,
        score=round(composite, 2),
    )


def format_price(amount: int) -> str:
    return f"${amount / PRICE_UNIT:.2f}"


def build_reasoning(
    goal: str,
    selected: Sequence[WorkflowDescriptor],
    compatibility_score: float,
    total_price: int,
) -> str:
    names = " → ".join(w.name for w in selected)

    return "\n".join([
        f'Goal: "{goal}"',
        f"Pipeline: {names}",
        f"Schema compatibility: {compatibility_score * 100:.0f}%",
        f"Total cost: {format_price(total_price)}",
        f"Selected {len(selected)} workflows based on capability matching, "
        f"reliability (execution count), and schema compatibility.",
    ])
