# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Capability Classifier

Maps a free-text goal to capability tags by keyword lookup.
New capabilities are new rows in CAPABILITY_KEYWORDS.
"""

from typing import Dict, List

CAPABILITY_KEYWORDS: Dict[str, List[str]] = {
    "price-feed": ["price", "oracle", "feed", "rate", "quote"],
    "dex-swap": ["swap", "dex", "exchange", "trade", "uniswap"],
    "alert": ["alert", "notify", "notification", "webhook", "email"],
    "compliance": ["compliance", "kyc", "aml", "sanctions", "screening"],
    "transfer": ["transfer", "send", "pay", "payout"],
    "evm-write": ["transaction", "contract", "write", "execute", "mint"],
    "aggregate": ["aggregate", "combine", "consensus", "multi-source"],
    "monitor": ["monitor", "watch", "track", "activity"],
}

DEFAULT_CAPABILITY = "price-feed"


def parse_goal_capabilities(goal: str) -> List[str]:
    """
    Capabilities whose keywords appear in the goal, in table order.

    Never empty: falls back to DEFAULT_CAPABILITY.
    """
    lower = (goal or "").lower()
    matched = [
        capability
        for capability, keywords in CAPABILITY_KEYWORDS.items()
        if any(keyword in lower for keyword in keywords)
    ]
    return matched or [DEFAULT_CAPABILITY]


def goal_needs_pipeline(goal: str) -> bool:
    """A goal needs composition when it names two or more capabilities"""
    return len(parse_goal_capabilities(goal)) >= 2
