# tests/test_adaptive_threshold.py
import pytest

from speech_segmenter.sound.AdaptiveThreshold import AdaptiveThreshold


@pytest.fixture
def threshold():
    return AdaptiveThreshold(initial_threshold=0.01)


def test_seeded_with_nonzero_noise_floor(threshold):
    assert threshold.noise_floor == pytest.approx(0.001)
    assert threshold.adaptive_threshold == pytest.approx(0.01)


def test_decide_uses_strict_comparison():
    threshold = AdaptiveThreshold(initial_threshold=0.1, noise_floor=0.01)

    assert threshold.decide(0.05) is False
    assert threshold.decide(0.15) is True
    assert threshold.decide(0.1) is False


def test_safety_bound_applies_when_adaptive_threshold_is_low():
    threshold = AdaptiveThreshold(initial_threshold=0.0, noise_floor=0.02)

    # max(0.0, 3 * 0.02) = 0.06
    assert threshold.decide(0.05) is False
    assert threshold.decide(0.07) is True


def test_non_speech_update_follows_ema(threshold):
    initial = threshold.noise_floor

    threshold.update(0.05, is_speech_frame=False)

    expected = 0.01 * 0.05 + 0.99 * initial
    assert threshold.noise_floor == pytest.approx(expected)
    assert threshold.adaptive_threshold == pytest.approx(5 * expected)


def test_speech_update_does_not_mutate(threshold):
    threshold.update(0.05, is_speech_frame=False)
    before = threshold.state

    threshold.update(0.5, is_speech_frame=True)

    assert threshold.state == before


def test_ema_recurrence_over_run(threshold):
    energies = [0.002, 0.003, 0.0, 0.004, 0.001] * 20
    expected = threshold.noise_floor

    for energy in energies:
        threshold.update(energy, is_speech_frame=False)
        expected = 0.01 * energy + 0.99 * expected
        assert threshold.noise_floor == pytest.approx(expected, rel=1e-12)
        assert threshold.noise_floor >= 0


def test_reseed_overwrites_adaptive_threshold_only(threshold):
    threshold.update(0.002, is_speech_frame=False)
    floor = threshold.noise_floor

    threshold.reseed(0.2)

    assert threshold.adaptive_threshold == 0.2
    assert threshold.noise_floor == floor


def test_custom_multiplier_and_alpha():
    threshold = AdaptiveThreshold(initial_threshold=0.01, noise_floor=0.0, alpha=0.5, noise_floor_multiplier=2.0)

    threshold.update(0.1, is_speech_frame=False)

    assert threshold.noise_floor == pytest.approx(0.05)
    assert threshold.adaptive_threshold == pytest.approx(0.1)


def test_reset_restores_seed(threshold):
    for _ in range(500):
        threshold.update(0.0045, is_speech_frame=False)
    assert threshold.adaptive_threshold > 0.02

    threshold.reset(0.01)

    assert threshold.noise_floor == pytest.approx(0.001)
    assert threshold.adaptive_threshold == 0.01
    assert threshold.state == AdaptiveThreshold(initial_threshold=0.01).state
