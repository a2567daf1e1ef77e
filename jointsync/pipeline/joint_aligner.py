from __future__ import annotations
from typing import List

import numpy as np

from ..math.quaternion import relative_quat
from .sample_store import SampleStore
from .types import JointSample

__all__ = ["closest_indices", "align_joint"]


def closest_indices(t_src: np.ndarray, t_query: np.ndarray) -> np.ndarray:
    """Vectorised nearest-neighbour lookup into sorted ``t_src``.

    Same rule as ``SampleStore.closest_index``: ties go to the earlier sample.
    """
    t_src = np.asarray(t_src, dtype=float)
    t_query = np.asarray(t_query, dtype=float)
    i = np.searchsorted(t_src, t_query, side="left")
    hi = np.clip(i, 0, t_src.size - 1)
    lo = np.clip(i - 1, 0, t_src.size - 1)
    take_lo = (t_query - t_src[lo]) <= (t_src[hi] - t_query)
    return np.where((i > 0) & ((i >= t_src.size) | take_lo), lo, hi)


def align_joint(thigh: SampleStore, shin: SampleStore) -> List[JointSample]:
    """Pair each thigh sample with its nearest shin sample.

    Output follows the thigh timeline with
    ``q = normalize(inverse(thigh)) * normalize(shin)``. There is no maximum
    match distance here; gaps are handled at resampling time. Either store
    being empty yields no samples for the joint.
    """
    if thigh.is_empty() or shin.is_empty():
        return []
    t_thigh = thigh.timestamps
    idx = closest_indices(shin.timestamps, t_thigh)
    q_rel = relative_quat(thigh.quaternions, shin.quaternions[idx])
    return [JointSample(t=float(t), q=q) for t, q in zip(t_thigh, q_rel)]
