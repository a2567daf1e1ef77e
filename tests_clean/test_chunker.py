from __future__ import annotations
import re

import numpy as np
import pytest

from jointsync.math.quaternion import IDENTITY, quat_from_axis_angle
from jointsync.pipeline.chunker import (
    calculate_chunk_count,
    chunk_samples,
    estimate_chunk_size,
    generate_session_id,
)
from jointsync.pipeline.codec import merge_chunks, pack_joint, unpack_chunk
from jointsync.pipeline.types import PipelineError, SampleFlag, UniformSample


def uniform(n, left=True, right=True):
    out = []
    for i in range(n):
        q = quat_from_axis_angle([1, 0, 0], float(i))
        out.append(UniformSample(
            t=i * 10.0,
            left=q if left else None,
            right=q if right else None,
            left_flag=SampleFlag.INTERPOLATED if i % 3 == 0 else SampleFlag.REAL,
            right_flag=SampleFlag.REAL if right else SampleFlag.MISSING,
        ))
    return out


def test_session_id_format():
    sid = generate_session_id()
    assert re.fullmatch(r"session_\d+_[0-9a-z]{6}", sid)
    assert generate_session_id() != sid


def test_chunk_boundaries():
    res = chunk_samples(uniform(10), session_id="s1", chunk_size=4)
    assert res.total_chunks == 3
    assert res.total_samples == 10
    assert [c.chunk_index for c in res.chunks] == [0, 1, 2]
    assert [c.sample_count for c in res.chunks] == [4, 4, 2]
    assert all(c.total_chunks == 3 and c.session_id == "s1" for c in res.chunks)
    assert res.chunks[1].start_time == 40.0
    assert res.chunks[1].end_time == 70.0
    assert res.chunks[2].left_flags.tolist() == [0, 1]


def test_default_chunk_size():
    res = chunk_samples(uniform(6001, right=False))
    assert [c.sample_count for c in res.chunks] == [6000, 1]
    assert re.fullmatch(r"session_\d+_[0-9a-z]{6}", res.session_id)


def test_zero_samples_zero_chunks():
    res = chunk_samples([], session_id="empty")
    assert res.chunks == []
    assert res.total_chunks == 0
    assert res.session_id == "empty"


def test_bad_chunk_size_raises():
    with pytest.raises(PipelineError):
        chunk_samples(uniform(2), chunk_size=0)


def test_inactive_joint_packs_empty():
    c = chunk_samples(uniform(3, right=False), session_id="s").chunks[0]
    assert c.active_joints == ("left_knee",)
    assert c.compressed_right.size == 0
    assert c.compressed_left.shape == (12,)
    assert c.right_flags.tolist() == [2, 2, 2]


def test_pack_joint_uses_identity_for_gaps():
    q = quat_from_axis_angle([0, 0, 1], 30.0)
    packed = pack_joint([q, None])
    np.testing.assert_allclose(packed, np.concatenate([q, IDENTITY]))
    assert pack_joint([None, None]).size == 0


def test_custom_codec_is_used():
    res = chunk_samples(uniform(5), session_id="s", chunk_size=5, codec=lambda qs: len(qs))
    assert res.chunks[0].compressed_left == 5
    assert res.chunks[0].compressed_right == 5


def test_unpack_and_merge_restore_samples():
    samples = uniform(10, right=False)
    res = chunk_samples(samples, session_id="s", chunk_size=4, sample_rate=100)
    back = merge_chunks(reversed(res.chunks))
    assert len(back) == 10
    for a, b in zip(samples, back):
        assert a.t == pytest.approx(b.t)
        np.testing.assert_allclose(a.left, b.left)
        assert b.right is None
        assert a.left_flag == b.left_flag and a.right_flag == b.right_flag
    assert len(unpack_chunk(res.chunks[2])) == 2


def test_merge_rejects_foreign_or_partial_chunks():
    a = chunk_samples(uniform(4), session_id="a", chunk_size=2).chunks
    b = chunk_samples(uniform(4), session_id="b", chunk_size=2).chunks
    with pytest.raises(ValueError):
        merge_chunks([a[0], b[1]])
    with pytest.raises(ValueError):
        merge_chunks([a[1]])
    assert merge_chunks([]) == []


def test_planning_helpers():
    assert calculate_chunk_count(60_000) == 1
    assert calculate_chunk_count(120_000) == 2
    assert calculate_chunk_count(120_001) == 3
    assert calculate_chunk_count(10_000, sample_rate=50, chunk_size=100) == 5
    c = chunk_samples(uniform(4), session_id="s", chunk_size=4).chunks[0]
    # 200 overhead + 2 joints * 16 floats * 8 bytes + 2 * 4 flag bytes
    assert estimate_chunk_size(c) == 200 + 256 + 8
