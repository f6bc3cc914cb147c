from itertools import accumulate

import numpy as np
import pytest

from splatforge.prefix_sum import calc_cube_count, prefix_sum


def test_sum_tiny():
    summed = prefix_sum([1, 1, 1, 1])
    assert len(summed) == 4
    assert list(summed) == [1, 2, 3, 4]


def test_512_multiple():
    data = [90 + i for i in range(1024)]
    summed = prefix_sum(data)
    assert list(summed) == list(accumulate(data))


def test_sum():
    data = []
    for i in range(512 * 16 + 123):
        data.extend([2 + i, 0, 32, 512, 30965])
    summed = prefix_sum(data)
    assert len(summed) == len(data)
    assert list(summed) == list(accumulate(data))


def test_empty_input_gives_empty_result():
    assert prefix_sum([]).size == 0


def test_result_is_int32():
    assert prefix_sum([1, 2, 3]).dtype == np.int32


def test_rejects_two_dimensional_input():
    with pytest.raises(ValueError):
        prefix_sum([[1, 2], [3, 4]])


def test_calc_cube_count_rounds_up():
    assert calc_cube_count([1000], (512, 1, 1)) == (2, 1, 1)
    assert calc_cube_count([512], (512, 1, 1)) == (1, 1, 1)


def test_calc_cube_count_fills_missing_axes():
    assert calc_cube_count([33, 17], (16, 16, 1)) == (3, 2, 1)


def test_calc_cube_count_zero_size():
    assert calc_cube_count([0], (256, 1, 1)) == (0, 1, 1)