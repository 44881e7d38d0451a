"""
Progressive level curve.

Levels 1-5 cost 500 XP each, 6-10 cost 750, 11-20 cost 1000, 21-30 cost 1500
and every level after that costs 2000.
"""

from __future__ import annotations

from typing import Dict

_TIERS = (
    (5, 500),
    (10, 750),
    (20, 1000),
    (30, 1500),
)
_TOP_TIER_XP = 2000


def xp_per_level(level: int) -> int:
    """XP needed to go from `level` to `level + 1`."""
    for last_level, cost in _TIERS:
        if level <= last_level:
            return cost
    return _TOP_TIER_XP


def xp_for_level(target_level: int) -> int:
    """Total XP needed to reach `target_level` from zero."""
    return sum(xp_per_level(lvl) for lvl in range(1, max(1, target_level)))


def level_for_xp(total_xp: int) -> int:
    level = 1
    accumulated = 0
    total_xp = max(0, int(total_xp))
    while accumulated + xp_per_level(level) <= total_xp:
        accumulated += xp_per_level(level)
        level += 1
    return level


def level_progress(total_xp: int) -> Dict[str, int]:
    level = level_for_xp(total_xp)
    into_level = max(0, int(total_xp)) - xp_for_level(level)
    return {
        "level": level,
        "xp_into_level": into_level,
        "xp_for_next_level": xp_per_level(level),
    }
