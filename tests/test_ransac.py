import random

import pytest

from calibu.ransac import Ransac

DATA = [1.0, 1.1, 0.9, 1.0, 10.0, -5.0]


def _mean_model(indices, data):
    return sum(data[i] for i in indices) / len(indices)


def _abs_cost(model, index, data):
    return abs(data[index] - model)


def test_finds_inliers_and_model():
    ransac = Ransac(_mean_model, _abs_cost, DATA, 2, rng=random.Random(0))
    model, inliers = ransac.compute(len(DATA), 50, 0.5, 3)
    assert sorted(inliers) == [0, 1, 2, 3]
    assert model == pytest.approx(_mean_model([0, 1, 2, 3], DATA))


def test_too_few_elements():
    ransac = Ransac(_mean_model, _abs_cost, DATA, 4, rng=random.Random(1))
    result = ransac.compute(3, 10, 0.5, 1)
    assert result.model is None
    assert result.inliers == []


def test_unreachable_consensus():
    ransac = Ransac(_mean_model, _abs_cost, DATA, 2, rng=random.Random(2))
    model, inliers = ransac.compute(len(DATA), 20, 0.5, len(DATA) + 1)
    assert model is None
    assert inliers == []


def test_samples_are_distinct():
    seen = []

    def model_fn(indices, data):
        seen.append(list(indices))
        return _mean_model(indices, data)

    ransac = Ransac(model_fn, _abs_cost, DATA, 3, rng=random.Random(3))
    model, inliers = ransac.compute(len(DATA), 15, 0.5, 0)

    assert len(seen) >= 15
    assert all(len(set(indices)) == len(indices) for indices in seen)
    assert min(len(indices) for indices in seen) == 3
    assert all(0 <= i < len(DATA) for indices in seen for i in indices)

    assert len(inliers) >= 3
    assert len(set(inliers)) == len(inliers)
    assert model == pytest.approx(_mean_model(inliers, DATA))


def test_inliers_are_within_threshold_of_model():
    ransac = Ransac(_mean_model, _abs_cost, DATA, 2, rng=random.Random(4))
    model, inliers = ransac.compute(len(DATA), 40, 0.5, 3)
    assert len(inliers) >= 3
    assert all(abs(DATA[i] - model) < 0.5 for i in inliers)


def test_invalid_minimum_set_size():
    with pytest.raises(ValueError):
        Ransac(_mean_model, _abs_cost, DATA, 0)