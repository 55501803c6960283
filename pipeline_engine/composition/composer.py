# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Composer

goal -> capabilities -> candidates -> pairwise compatibility -> proposal.

Composition failure is not an exception: auto_compose returns None so the
caller can fall back to single-workflow execution.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

from pipeline_engine.core.logging import get_service_logger
from .models import WorkflowDescriptor, CompatibilityResult, ProposedPipeline
from .capabilities import parse_goal_capabilities
from .selector import select_candidates
from .assembler import (
    assemble_pipeline,
    check_adjacent_pairs,
    DEFAULT_MATERIALIZE_THRESHOLD,
)
from .matcher import DEFAULT_FUZZY_MAX_DISTANCE
from .scoring import ScoringWeights, score_plan, build_reasoning

logger = get_service_logger("composer")

PairCheck = Callable[[WorkflowDescriptor, WorkflowDescriptor], Awaitable[CompatibilityResult]]


class PipelineComposer:
    """
    Greedy pipeline composer.

    Planning is first-fit by reliability, not a search for the best
    aggregate score.
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        materialize_threshold: float = DEFAULT_MATERIALIZE_THRESHOLD,
        max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
    ):
        self.weights = weights or ScoringWeights()
        self.materialize_threshold = materialize_threshold
        self.max_distance = max_distance

    @classmethod
    def from_config(cls, config) -> "PipelineComposer":
        return cls(
            weights=ScoringWeights.from_config(config),
            materialize_threshold=config.materialize_threshold,
            max_distance=config.fuzzy_max_distance,
        )

    def select(self, goal: str, catalog: Sequence[WorkflowDescriptor]) -> List[WorkflowDescriptor]:
        """Workflows chosen for the goal, one per satisfiable capability"""
        if not catalog:
            return []

        capabilities = parse_goal_capabilities(goal)
        selected = select_candidates(capabilities, catalog)
        logger.info(
            f"Goal capabilities {capabilities} selected {len(selected)} workflow(s)",
            extra={"capabilities": capabilities, "workflow_ids": [w.id for w in selected]},
        )
        return selected

    def auto_compose(self, goal: str, catalog: Sequence[WorkflowDescriptor]) -> Optional[ProposedPipeline]:
        """Compose using local schema checks on the cached descriptors"""
        selected = self.select(goal, catalog)
        if not selected:
            logger.warning(f"Could not compose a pipeline for goal: {goal!r}")
            return None

        pair_results = check_adjacent_pairs(selected, self.max_distance)
        return self._build_proposal(goal, selected, pair_results)

    async def auto_compose_async(
        self,
        goal: str,
        catalog: Sequence[WorkflowDescriptor],
        check: PairCheck,
    ) -> Optional[ProposedPipeline]:
        """
        Compose using an async pairwise lookup (e.g. a remote API).

        Pair lookups are independent and run concurrently; results are
        folded back in pair order.
        """
        selected = self.select(goal, catalog)
        if not selected:
            logger.warning(f"Could not compose a pipeline for goal: {goal!r}")
            return None

        pair_results = await asyncio.gather(*[
            check(producer, consumer)
            for producer, consumer in zip(selected, selected[1:])
        ])
        return self._build_proposal(goal, selected, list(pair_results))

    def _build_proposal(
        self,
        goal: str,
        selected: Sequence[WorkflowDescriptor],
        pair_results: Sequence[CompatibilityResult],
    ) -> ProposedPipeline:
        plan = assemble_pipeline(selected, pair_results, self.materialize_threshold)
        plan_score = score_plan(plan.pair_scores, plan.total_price, selected, self.weights)

        proposal = ProposedPipeline(
            name=f"Auto: {goal[:50]}",
            description=f"Automatically composed pipeline for: {goal}",
            steps=plan.steps,
            total_price=plan.total_price,
            score=plan_score.score,
            reasoning=build_reasoning(goal, selected, plan_score.avg_compatibility, plan.total_price),
        )

        logger.info(
            f"Composed \"{proposal.name}\" ({len(proposal.steps)} steps, score: {proposal.score})",
            extra={"total_price": proposal.total_price, "score": proposal.score},
        )
        return proposal
