"""Priority tiers derived from sibling position.

Priority is never stored: it is the position of a task in one parent's child
list, quantized into a tier and a colour at render time.
"""

import colorsys
from dataclasses import dataclass
from enum import Enum

# Hue gradient endpoints in degrees: red for most urgent, green for least
URGENT_HUE = 0.0
RELAXED_HUE = 120.0


class Tier(Enum):
    """Priority tiers, most urgent first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = list(Tier)


@dataclass(frozen=True)
class Priority:
    """Position of a task among ``total`` siblings in one parent's list."""
    position: int = 0
    total: int = 1

    @property
    def ratio(self) -> float:
        return priority_ratio(self.position, self.total)

    @property
    def tier(self) -> Tier:
        return tier_for(self.position, self.total)

    @property
    def color(self) -> str:
        return priority_color(self.position, self.total)


def priority_ratio(position: int, total: int) -> float:
    """Map position ``p`` of ``n`` siblings to ``p / max(n - 1, 1)`` in [0, 1]."""
    if position < 0 or position >= max(total, 1):
        raise ValueError(f"position {position} out of range for {total} siblings")
    return position / max(total - 1, 1)


def tier_for(position: int, total: int) -> Tier:
    """Quantize a sibling position into a tier.

    Position 0 is always CRITICAL and the last of several siblings always LOW.
    """
    ratio = priority_ratio(position, total)
    index = min(int(ratio * len(_TIER_ORDER)), len(_TIER_ORDER) - 1)
    return _TIER_ORDER[index]


def priority_hue(position: int, total: int) -> float:
    """Hue in degrees on the urgent-to-relaxed gradient."""
    return URGENT_HUE + (RELAXED_HUE - URGENT_HUE) * priority_ratio(position, total)


def priority_color(position: int, total: int) -> str:
    """Hex colour (``#rrggbb``) usable as a rich style."""
    r, g, b = colorsys.hls_to_rgb(priority_hue(position, total) / 360.0, 0.5, 0.8)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))
