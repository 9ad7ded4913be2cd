"""State encoder: raw game ``State`` -> fixed 88-wide feature vector.

Layout::

    [0:40]   obstacle 0 distance, one-hot over 40 buckets
    [40]     obstacle 0 y-position
    [41]     obstacle 0 width
    [42]     obstacle 0 height
    [43:86]  same for obstacle 1
    [86]     jumping flag (0/1)
    [87]     agent y-position

Distance buckets are 16 px wide and start at x = 19, the closest an
obstacle gets before a crash.  Obstacles appear at roughly x = 625, so
39 buckets cover the visible range; anything farther saturates in the
last bucket.

Encoding is pure and deterministic: feature vectors are compared
bit-for-bit against logged vectors, so no value is quantized or
normalized here.
"""

from __future__ import annotations

import math

import numpy as np

from dino_rl.types import MAX_OBSTACLES, FeatureVector, Obstacle, State

NUM_BUCKETS = 40
BUCKET_WIDTH = 16
MIN_DISTANCE = 19

BLOCK_WIDTH = NUM_BUCKETS + 3
JUMPING_INDEX = MAX_OBSTACLES * BLOCK_WIDTH
Y_POS_INDEX = JUMPING_INDEX + 1
FEATURE_DIM = Y_POS_INDEX + 1


def distance_bucket(x_pos: float) -> int:
    """Map an obstacle x-position to its distance bucket in ``[0, 39]``."""
    bucket = math.floor((x_pos - MIN_DISTANCE) / BUCKET_WIDTH)
    return min(NUM_BUCKETS - 1, max(0, bucket))


def _write_obstacle(vector: np.ndarray, obstacle: Obstacle | None, offset: int) -> None:
    if obstacle is None or not math.isfinite(obstacle.x_pos):
        return
    vector[offset + distance_bucket(obstacle.x_pos)] = 1.0
    vector[offset + NUM_BUCKETS] = obstacle.y_pos
    vector[offset + NUM_BUCKETS + 1] = obstacle.width
    vector[offset + NUM_BUCKETS + 2] = obstacle.height


def encode_state(state: State) -> FeatureVector:
    """Encode *state* into a ``float32`` vector of shape ``(88,)``."""
    vector = np.zeros(FEATURE_DIM, dtype=np.float32)
    for i, obstacle in enumerate(state.obstacles[:MAX_OBSTACLES]):
        _write_obstacle(vector, obstacle, i * BLOCK_WIDTH)
    if state.jumping:
        vector[JUMPING_INDEX] = 1.0
    vector[Y_POS_INDEX] = state.y_pos
    return vector

