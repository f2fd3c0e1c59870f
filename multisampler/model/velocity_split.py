"""
Velocity splitting for group -> layer mapping.

Splits 0-127 into `count` adjacent layers. In crossfade mode each layer's
outer range is widened by a fraction of a step and the crossfade bounds
keep the core range, so the host fades between neighbours:

    core [43, 84], overlap 8  ->  min 35, max 92, crossfade 43..84
"""

from enum import Enum
from typing import List

from multisampler.config import CROSSFADE_OVERLAP, VELOCITY_MAX, VELOCITY_MIN
from .mapping import VelocityRange


class VelocitySplitMode(Enum):
    SEPARATE = "separate"    # Distinct zones, no overlap
    CROSSFADE = "crossfade"  # Overlapping zones with crossfades


def split_velocity_ranges(count: int,
                          mode: VelocitySplitMode = VelocitySplitMode.SEPARATE
                          ) -> List[VelocityRange]:
    """
    Split the velocity span into `count` ranges, lowest first.

    Returns:
        List of VelocityRange (empty for count <= 0)
    """
    if count <= 0:
        return []
    if count == 1:
        return [VelocityRange.full()]

    step = VELOCITY_MAX / count
    overlap = int(step * CROSSFADE_OVERLAP) if mode == VelocitySplitMode.CROSSFADE else 0

    ranges = []
    for i in range(count):
        core_min = VELOCITY_MIN if i == 0 else int(i * step) + 1
        core_max = VELOCITY_MAX if i == count - 1 else int((i + 1) * step)
        ranges.append(VelocityRange(
            min=max(VELOCITY_MIN, core_min - overlap),
            max=min(VELOCITY_MAX, core_max + overlap),
            crossfade_min=core_min,
            crossfade_max=core_max,
        ))
    return ranges
