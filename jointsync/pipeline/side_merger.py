from __future__ import annotations
from typing import List, Sequence

from .types import CombinedSample, JointSample

__all__ = ["merge_sides"]


def merge_sides(left: Sequence[JointSample], right: Sequence[JointSample]) -> List[CombinedSample]:
    """Combine left and right joint streams on the left timeline.

    A missing side passes the other through with ``None`` in its place
    (single-limb recording). With both sides present, the right pointer only
    moves forward: it advances while the next right sample is strictly closer
    to the current left timestamp. Both sides empty yields an empty list.
    """
    if not left and not right:
        return []
    if not left:
        return [CombinedSample(t=s.t, left=None, right=s.q) for s in right]
    if not right:
        return [CombinedSample(t=s.t, left=s.q, right=None) for s in left]

    out: List[CombinedSample] = []
    j = 0
    last = len(right) - 1
    for ls in left:
        while j < last and abs(right[j + 1].t - ls.t) < abs(right[j].t - ls.t):
            j += 1
        out.append(CombinedSample(t=ls.t, left=ls.q, right=right[j].q))
    return out
