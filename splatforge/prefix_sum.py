"""Inclusive prefix sums over 32-bit integers, computed block by block."""

import numpy as np

THREADS_PER_GROUP = 512
WORKGROUP_SIZE = (512, 1, 1)


def calc_cube_count(sizes, workgroup_size):
    """Number of work groups needed along each of three axes.

    Missing sizes count as 1; sizes beyond the third are ignored.
    """
    padded = (list(sizes) + [1, 1, 1])[:3]
    return tuple(-(-size // group) for size, group in zip(padded, workgroup_size))


def _scan(values):
    count = values.size
    if count <= THREADS_PER_GROUP:
        return np.cumsum(values, dtype=np.int32)

    groups = calc_cube_count([count], WORKGROUP_SIZE)[0]
    padded = np.zeros(groups * THREADS_PER_GROUP, dtype=np.int32)
    padded[:count] = values
    blocks = padded.reshape(groups, THREADS_PER_GROUP).cumsum(axis=1, dtype=np.int32)

    scanned_sums = _scan(blocks[:, -1])
    offsets = np.concatenate(([0], scanned_sums[:-1])).astype(np.int32)
    return (blocks + offsets[:, None]).reshape(-1)[:count]


def prefix_sum(values):
    """Inclusive prefix sum of a one-dimensional sequence of integers.

    Arithmetic wraps around like 32-bit signed integers.
    """
    array = np.asarray(values)
    if array.ndim != 1:
        raise ValueError(f"expected a one-dimensional sequence, got {array.ndim} dimensions")
    return _scan(array.astype(np.int32))