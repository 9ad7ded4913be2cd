"""Tests for session state, model bootstrap and target synchronization."""

from __future__ import annotations

import logging
from pathlib import Path

import jax
import pytest

from dino_rl.algorithms.ddqn import DDQNConfig, QModel, save_models, sync_target, weights_equal
from dino_rl.run_dir import MAIN, TARGET, RunDir
from dino_rl.runner.session import TrainingSession, load_models, load_session

CONFIG = DDQNConfig(hidden_sizes=(8,))
KEY = jax.random.PRNGKey(0)


@pytest.fixture
def run(tmp_path: Path) -> RunDir:
    return RunDir("default", base_dir=tmp_path)


class TestTrainingSession:
    def test_start(self):
        session = TrainingSession.start(DDQNConfig(epsilon_start=0.8))
        assert session.epsilon == 0.8
        assert session.episode == 0

    def test_roundtrip_resets_accumulator(self):
        session = TrainingSession(epsilon=0.3, episode=12, episode_reward=4.0, accepted_steps=99)
        restored = TrainingSession.from_dict(session.to_dict(), CONFIG)
        assert restored.epsilon == 0.3
        assert restored.episode == 12
        assert restored.accepted_steps == 99
        assert restored.episode_reward == 0.0

    def test_from_dict_ignores_unknown_keys(self):
        restored = TrainingSession.from_dict({"episode": 2, "extra": True}, CONFIG)
        assert restored.episode == 2
        assert restored.epsilon == CONFIG.epsilon_start

    def test_load_session_resume(self, run):
        run.save_session(TrainingSession(epsilon=0.25, episode=40))
        assert load_session(run, CONFIG).episode == 40
        assert load_session(run, CONFIG, resume=False).episode == 0

    def test_load_session_fresh(self, run):
        assert load_session(run, CONFIG) == TrainingSession.start(CONFIG)


class TestLoadModels:
    def test_fresh_models_start_identical(self, run, caplog):
        with caplog.at_level(logging.INFO, logger="dino_rl"):
            online, target = load_models(run, CONFIG, key=KEY)
        assert "No saved model found, creating a new one" in caplog.text
        assert weights_equal(online, target)
        assert online is not target

    def test_resume_both(self, run, caplog):
        a = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        b = QModel.create(CONFIG, key=jax.random.PRNGKey(2))
        save_models(a, b, run)

        with caplog.at_level(logging.INFO, logger="dino_rl"):
            online, target = load_models(run, CONFIG, key=KEY)
        assert "Loaded saved model from" in caplog.text
        assert weights_equal(online, a)
        assert weights_equal(target, b)

    def test_target_falls_back_to_main(self, run):
        a = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        a.save(run.model_dir(MAIN))
        online, target = load_models(run, CONFIG, key=KEY)
        assert not run.has_model(TARGET)
        assert weights_equal(online, a)
        assert weights_equal(target, a)

    def test_resume_false_ignores_checkpoints(self, run):
        a = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        save_models(a, a, run)
        online, _ = load_models(run, CONFIG, key=KEY, resume=False)
        assert not weights_equal(online, a)

    def test_unreadable_checkpoint_is_ignored(self, run, caplog):
        step = run.model_dir(MAIN) / "1"
        step.mkdir(parents=True)
        (step / "state").write_bytes(b"garbage")
        with caplog.at_level(logging.WARNING, logger="dino_rl"):
            online, target = load_models(run, CONFIG, key=KEY)
        assert "Ignoring unreadable main checkpoint" in caplog.text
        assert weights_equal(online, target)


class TestSyncTarget:
    def test_copies_weights_and_persists(self, run):
        online = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        target = QModel.create(CONFIG, key=jax.random.PRNGKey(2))
        assert sync_target(online, target, run)
        assert weights_equal(online, target)
        assert run.has_model(MAIN)
        assert run.has_model(TARGET)

    def test_without_run_dir(self):
        online = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        target = QModel.create(CONFIG, key=jax.random.PRNGKey(2))
        assert sync_target(online, target)
        assert weights_equal(online, target)

    def test_save_failure_is_reported(self, run, caplog):
        online = QModel.create(CONFIG, key=jax.random.PRNGKey(1))
        run.models.rmdir()
        run.models.write_text("in the way")
        with caplog.at_level(logging.ERROR, logger="dino_rl"):
            assert not save_models(online, online, run)
        assert "Could not save main model" in caplog.text
