"""Tests for epsilon-greedy action selection."""

from collections import Counter

import numpy as np

from conftest import FixedModel
from dino_rl.algorithms.ddqn.policy import greedy_action, select_action
from dino_rl.encoding import FEATURE_DIM
from dino_rl.types import JUMP, NO_JUMP

FEATURES = np.zeros(FEATURE_DIM, dtype=np.float32)


class TestGreedyAction:
    def test_picks_highest_value(self):
        assert greedy_action(FixedModel(default=(0.1, 0.9)), FEATURES) == JUMP
        assert greedy_action(FixedModel(default=(0.9, 0.1)), FEATURES) == NO_JUMP

    def test_ties_resolve_to_no_jump(self):
        assert greedy_action(FixedModel(default=(0.5, 0.5)), FEATURES) == NO_JUMP


class TestSelectAction:
    def test_zero_epsilon_is_greedy(self):
        rng = np.random.default_rng(0)
        model = FixedModel(default=(0.0, 1.0))
        assert {select_action(model, FEATURES, 0.0, rng) for _ in range(50)} == {JUMP}

    def test_full_epsilon_explores_both_actions(self):
        rng = np.random.default_rng(0)
        model = FixedModel(default=(0.0, 1.0))
        counts = Counter(select_action(model, FEATURES, 1.0, rng) for _ in range(400))
        assert set(counts) == {NO_JUMP, JUMP}
        assert 120 < counts[NO_JUMP] < 280

    def test_same_seed_same_decisions(self):
        model = FixedModel(default=(1.0, 0.0))

        def run(seed):
            rng = np.random.default_rng(seed)
            return [select_action(model, FEATURES, 0.5, rng) for _ in range(30)]

        assert run(3) == run(3)

    def test_returns_python_int(self):
        action = select_action(FixedModel(), FEATURES, 0.0, np.random.default_rng(0))
        assert type(action) is int
