import numpy as np

from psychometric_core.core.utils import clip_to_bounds, get_rng, sigmoid


def test_rng_reproducibility() -> None:
    rng1 = get_rng(42)
    rng2 = get_rng(42)
    assert rng1.random() == rng2.random()


def test_sigmoid_midpoint() -> None:
    np.testing.assert_allclose(sigmoid(0.0), 0.5)


def test_sigmoid_stays_inside_open_interval() -> None:
    """Huge logits are clipped, so the result never reaches 0 or 1."""
    values = sigmoid(np.array([-1e6, 1e6]))
    assert values[0] > 0.0
    assert values[1] < 1.0


def test_clip_to_bounds() -> None:
    assert clip_to_bounds(5.0, (-3.0, 3.0)) == 3.0
    assert clip_to_bounds(-5.0, (-3.0, 3.0)) == -3.0
    assert clip_to_bounds(1.5, (-3.0, 3.0)) == 1.5
