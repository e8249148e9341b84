"""
FORMCOACH Coach Service - Kinematics

Planar joint-angle helpers over landmark positions.
"""

from typing import Optional

import numpy as np

from .landmarks import Landmark


def calculate_angle(
    a: Optional[Landmark],
    b: Optional[Landmark],
    c: Optional[Landmark],
) -> float:
    """
    Calculate the interior angle at b formed by points a-b-c.

    Uses the 2D projection (x, y) of each landmark; depth is ignored.

    Args:
        a: Proximal point
        b: Joint vertex
        c: Distal point

    Returns:
        Angle in degrees (0-180), or 0 if any point is missing
    """
    if a is None or b is None or c is None:
        return 0.0

    ba = a.to_numpy()[:2] - b.to_numpy()[:2]
    bc = c.to_numpy()[:2] - b.to_numpy()[:2]

    radians = np.arctan2(bc[1], bc[0]) - np.arctan2(ba[1], ba[0])
    angle = abs(float(np.degrees(radians)))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def horizontal_width(a: Optional[Landmark], b: Optional[Landmark]) -> float:
    """Horizontal distance between two landmarks (0 if either is missing)."""
    if a is None or b is None:
        return 0.0
    return abs(a.x - b.x)


def midpoint_y(a: Landmark, b: Landmark) -> float:
    return (a.y + b.y) / 2
