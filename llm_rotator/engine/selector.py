# llm_rotator/engine/selector.py
"""
Rotation strategies.

The selector picks the next candidate to try from the router's candidate
list. It does no I/O and knows nothing about rate limits: the router asks
it for a candidate, checks admission, and asks again (excluding what was
already rejected) until a model is admitted or the list runs out.

Strategies
----------
  round-robin  one cursor over the ordered list, advanced modulo its length
  random       uniform choice over the selectable candidates
  least-used   smallest admitted-request count, ties broken by list order

The cursor and the per-model counters belong to the selector instance, so
switching strategy at runtime keeps both. reset_usage() clears the
least-used counters only.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Collection, Sequence
from typing import Callable

from ..constants import (
    DEFAULT_STRATEGY,
    STRATEGY_LEAST_USED,
    STRATEGY_RANDOM,
    STRATEGY_ROUND_ROBIN,
    VALID_STRATEGIES,
)
from ..exceptions import ConfigurationError
from ..models import ModelConfig


class ModelSelector:
    """
    Stateful front-end over the three rotation strategies.

    Parameters
    ----------
    strategy:
        "round-robin" | "random" | "least-used".
    rng:
        Random source for the random strategy. Injectable for tests.
    """

    def __init__(self, strategy: str = DEFAULT_STRATEGY, rng: random.Random | None = None) -> None:
        self._strategy = _validate(strategy)
        self._rng = rng or random.Random()
        self._cursor = 0
        self._usage: dict[str, int] = {}
        self._lock = threading.Lock()
        self._dispatch: dict[str, Callable[[Sequence[ModelConfig], Collection[str]], ModelConfig]] = {
            STRATEGY_ROUND_ROBIN: self._round_robin,
            STRATEGY_RANDOM: self._random,
            STRATEGY_LEAST_USED: self._least_used,
        }

    @property
    def strategy(self) -> str:
        return self._strategy

    def set_strategy(self, strategy: str) -> None:
        with self._lock:
            self._strategy = _validate(strategy)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(
        self,
        candidates: Sequence[ModelConfig],
        exclude: Collection[str] = (),
    ) -> ModelConfig:
        """
        Return the next candidate under the active strategy.

        Candidates whose id is in *exclude* are never returned. Raises
        ValueError if nothing is selectable.
        """
        if not candidates or all(m.id in exclude for m in candidates):
            raise ValueError("no selectable candidates")
        with self._lock:
            return self._dispatch[self._strategy](candidates, exclude)

    def _round_robin(self, candidates: Sequence[ModelConfig], exclude: Collection[str]) -> ModelConfig:
        n = len(candidates)
        for step in range(n):
            index = (self._cursor + step) % n
            model = candidates[index]
            if model.id not in exclude:
                self._cursor = (index + 1) % n
                return model
        raise AssertionError("unreachable")  # pragma: no cover

    def _random(self, candidates: Sequence[ModelConfig], exclude: Collection[str]) -> ModelConfig:
        pool = [m for m in candidates if m.id not in exclude]
        return self._rng.choice(pool)

    def _least_used(self, candidates: Sequence[ModelConfig], exclude: Collection[str]) -> ModelConfig:
        pool = [m for m in candidates if m.id not in exclude]
        # min() returns the first minimum, so ties keep list order.
        return min(pool, key=lambda m: self._usage.get(m.id, 0))

    # ------------------------------------------------------------------
    # Usage counters
    # ------------------------------------------------------------------

    def record_use(self, model_id: str) -> None:
        """Count one admitted request for *model_id* (whatever the strategy)."""
        with self._lock:
            self._usage[model_id] = self._usage.get(model_id, 0) + 1

    def usage_count(self, model_id: str) -> int:
        with self._lock:
            return self._usage.get(model_id, 0)

    def reset_usage(self) -> None:
        with self._lock:
            self._usage.clear()


def _validate(strategy: str) -> str:
    if strategy not in VALID_STRATEGIES:
        raise ConfigurationError(
            f"strategy must be one of {sorted(VALID_STRATEGIES)}, got '{strategy}'"
        )
    return strategy
