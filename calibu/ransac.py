"""Random sample consensus model fitting."""

from __future__ import annotations

import math
import random
from typing import Any, Callable, Generic, NamedTuple, Sequence, TypeVar

Model = TypeVar("Model")


class RansacResult(NamedTuple, Generic[Model]):
    model: Model | None
    inliers: list[int]


class Ransac(Generic[Model]):
    """Fit a model robustly from random minimal samples of indexed elements.

    ``model_fn(indices, data)`` builds a model from the listed elements and
    ``cost_fn(model, index, data)`` gives the fit error of one element.
    """

    def __init__(
        self,
        model_fn: Callable[[Sequence[int], Any], Model],
        cost_fn: Callable[[Model, int, Any], float],
        data: Any,
        minimum_set_size: int,
        rng: random.Random | None = None,
    ):
        if minimum_set_size < 1:
            raise ValueError("minimum_set_size must be at least 1")
        self.model_fn = model_fn
        self.cost_fn = cost_fn
        self.data = data
        self.minimum_set_size = minimum_set_size
        self._rng = rng if rng is not None else random.Random()

    def _select_candidates(self, num_elements: int) -> list[int]:
        return self._rng.sample(range(num_elements), self.minimum_set_size)

    def compute(
        self,
        num_elements: int,
        iterations: int,
        max_datum_fit_error: float,
        min_consensus_size: int,
    ) -> RansacResult[Model]:
        """Best model found and its consensus set; ``(None, [])`` if none qualified."""
        if num_elements < self.minimum_set_size:
            return RansacResult(None, [])

        best_model: Model | None = None
        best_consensus: list[int] = []
        best_error = math.inf

        for _ in range(iterations):
            maybe_inliers = self._select_candidates(num_elements)
            maybe_model = self.model_fn(maybe_inliers, self.data)
            chosen = set(maybe_inliers)
            consensus = list(maybe_inliers)
            consensus.extend(
                i
                for i in range(num_elements)
                if i not in chosen
                and self.cost_fn(maybe_model, i, self.data) < max_datum_fit_error
            )

            if len(consensus) < min_consensus_size:
                continue
            better_model = self.model_fn(consensus, self.data)
            error = sum(
                self.cost_fn(better_model, i, self.data) ** 2 for i in consensus
            ) / len(consensus)
            if error < best_error:
                best_model = better_model
                best_consensus = consensus
                best_error = error

        return RansacResult(best_model, best_consensus)