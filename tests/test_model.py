"""Tests for the Equinox-backed QModel."""

from __future__ import annotations

from pathlib import Path

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import pytest

from dino_rl.algorithms.ddqn import DDQNConfig, Model, QModel, QNetwork, weights_equal
from dino_rl.encoding import FEATURE_DIM
from dino_rl.errors import PersistenceError

RNG = jax.random.PRNGKey(42)


@pytest.fixture
def config():
    return DDQNConfig(hidden_sizes=(16, 16), lr=1e-2)


@pytest.fixture
def model(config):
    return QModel.create(config, key=RNG)


class TestQNetwork:
    def test_layers(self):
        net = QNetwork(FEATURE_DIM, 2, (32, 32), key=RNG)
        assert [layer.out_features for layer in net.hidden] == [32, 32]
        assert net.head.out_features == 2

    def test_single_output_shape(self):
        net = QNetwork(FEATURE_DIM, 2, (8,), key=RNG)
        assert net(jnp.zeros(FEATURE_DIM)).shape == (2,)


class TestQModel:
    def test_satisfies_protocol(self, model):
        assert isinstance(model, Model)

    def test_apply_batch_shape(self, model):
        q = model.apply(np.zeros((5, FEATURE_DIM), dtype=np.float32))
        assert q.shape == (5, 2)

    def test_apply_promotes_single_vector(self, model):
        assert model.apply(np.zeros(FEATURE_DIM)).shape == (1, 2)

    def test_deterministic_init(self, config):
        a = QModel.create(config, key=RNG)
        b = QModel.create(config, key=RNG)
        assert weights_equal(a, b)

    def test_fit_reduces_loss(self, model):
        x = np.random.default_rng(0).normal(size=(32, FEATURE_DIM)).astype(np.float32)
        y = np.tile([[1.0, -1.0]], (32, 1)).astype(np.float32)
        first = model.fit(x, y, epochs=1, batch_size=32)["loss"][0]
        for _ in range(50):
            last = model.fit(x, y, epochs=1, batch_size=32)["loss"][0]
        assert last < first

    def test_fit_history_length(self, model):
        x = np.zeros((10, FEATURE_DIM), dtype=np.float32)
        y = np.zeros((10, 2), dtype=np.float32)
        history = model.fit(x, y, epochs=3, batch_size=4)
        assert len(history["loss"]) == 3

    def test_fit_batch_mismatch(self, model):
        with pytest.raises(ValueError):
            model.fit(np.zeros((4, FEATURE_DIM)), np.zeros((3, 2)))

    def test_fit_requires_compile(self):
        net = QNetwork(FEATURE_DIM, 2, (4,), key=RNG)
        bare = QModel(net, key=RNG, hidden_sizes=(4,))
        with pytest.raises(RuntimeError):
            bare.fit(np.zeros((1, FEATURE_DIM)), np.zeros((1, 2)))


class TestWeights:
    def test_get_set_roundtrip(self, config, model):
        other = QModel.create(config, key=jax.random.PRNGKey(7))
        assert not weights_equal(model, other)
        other.set_weights(model.get_weights())
        assert weights_equal(model, other)

    def test_sync_from_copies_values_not_references(self, config, model):
        target = QModel.create(config, key=jax.random.PRNGKey(7))
        target.sync_from(model)
        x = np.ones((4, FEATURE_DIM), dtype=np.float32)
        model.fit(x, np.full((4, 2), 5.0, dtype=np.float32))
        assert not weights_equal(model, target)

    def test_set_weights_wrong_count(self, model):
        with pytest.raises(ValueError):
            model.set_weights(model.get_weights()[:-1])

    def test_set_weights_wrong_shape(self, model):
        weights = model.get_weights()
        weights[0] = np.zeros((1, 1))
        with pytest.raises(ValueError):
            model.set_weights(weights)


class TestPersistence:
    def test_save_load_roundtrip(self, tmp_path: Path, config, model):
        path = model.save(tmp_path / "models" / "main")
        restored = QModel.load(path, config, key=jax.random.PRNGKey(1))
        assert weights_equal(model, restored)
        assert restored.hidden_sizes == (16, 16)

    def test_load_uses_saved_architecture(self, tmp_path: Path):
        small = QModel.create(DDQNConfig(hidden_sizes=(8,)), key=RNG)
        small.save(tmp_path / "m")
        restored = QModel.load(tmp_path / "m", DDQNConfig(), key=RNG)
        assert restored.hidden_sizes == (8,)
        assert weights_equal(small, restored)

    def test_load_missing_raises(self, tmp_path: Path, config):
        with pytest.raises(PersistenceError):
            QModel.load(tmp_path / "missing", config, key=RNG)

    def test_save_failure_raises(self, tmp_path: Path, model):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceError):
            model.save(blocker / "main")

    def test_loaded_model_is_trainable(self, tmp_path: Path, config, model):
        model.save(tmp_path / "m")
        restored = QModel.load(tmp_path / "m", config, key=RNG)
        history = restored.fit(np.zeros((2, FEATURE_DIM)), np.zeros((2, 2)))
        assert np.isfinite(history["loss"][0])
        assert isinstance(restored.network, eqx.Module)
