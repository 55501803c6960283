# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Candidate Selector

Greedy, first-fit selection of one workflow per capability, ranked by
execution count. A workflow is used at most once per plan.
"""

from typing import Dict, List, Sequence

from .capabilities import CAPABILITY_KEYWORDS
from .models import WorkflowDescriptor


def _search_text(workflow: WorkflowDescriptor) -> str:
    return f"{workflow.name} {workflow.description} {workflow.category}".lower()


def match_capability(capability: str, catalog: Sequence[WorkflowDescriptor]) -> List[WorkflowDescriptor]:
    """Catalog workflows whose name, description or category mention a capability keyword"""
    keywords = CAPABILITY_KEYWORDS.get(capability, [])
    return [
        workflow for workflow in catalog
        if any(keyword in _search_text(workflow) for keyword in keywords)
    ]


def match_capabilities(
    capabilities: Sequence[str],
    catalog: Sequence[WorkflowDescriptor],
) -> Dict[str, List[WorkflowDescriptor]]:
    """Capability -> matching workflows; capabilities without a provider are dropped"""
    matched = {}
    for capability in capabilities:
        matches = match_capability(capability, catalog)
        if matches:
            matched[capability] = matches
    return matched


def select_candidates(
    capabilities: Sequence[str],
    catalog: Sequence[WorkflowDescriptor],
) -> List[WorkflowDescriptor]:
    """
    Pick one workflow per capability, in capability order.

    Within a capability the most-executed unused workflow wins. A capability
    whose candidates are all taken contributes no step. Returns an empty list
    when nothing matched.
    """
    selected: List[WorkflowDescriptor] = []
    used_ids = set()

    for matches in match_capabilities(capabilities, catalog).values():
        ranked = sorted(matches, key=lambda w: w.total_executions, reverse=True)
        best = next((w for w in ranked if w.id not in used_ids), None)
        if best is not None:
            selected.append(best)
            used_ids.add(best.id)

    return selected
