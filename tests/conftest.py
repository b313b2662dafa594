import matplotlib
import pytest

from lp_problem import Sense, linear_program

matplotlib.use("Agg")


@pytest.fixture
def production():
    # maximize 3x1 + 2x2, x1 + x2 <= 4, x1 + 3x2 <= 6
    return linear_program([3, 2], [[1, 1], [1, 3]], [4, 6], ["<=", "<="], sense=Sense.MAXIMIZE)


@pytest.fixture
def equality():
    return linear_program([1, 1], [[1, 1]], [10], ["="], sense=Sense.MINIMIZE)


@pytest.fixture
def covering():
    return linear_program([2, 3], [[1, 1]], [5], [">="], sense=Sense.MINIMIZE)
