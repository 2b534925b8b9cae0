# speech_segmenter/sound/AdaptiveThreshold.py
"""
Tests for this module:
- tests/test_adaptive_threshold.py
"""
from ..types import ThresholdState


class AdaptiveThreshold:
    """Tracks the ambient noise floor and derives the speech decision threshold.

    The noise floor follows an exponential moving average of frames
    classified as non-speech:

        noise_floor = alpha * energy + (1 - alpha) * noise_floor
        adaptive_threshold = noise_floor_multiplier * noise_floor

    Speech frames never move the floor.

    Args:
        initial_threshold: Seed for adaptive_threshold (configured energy threshold)
        noise_floor: Initial noise floor, must be > 0 to avoid a zero threshold
        alpha: EMA adaptation rate
        noise_floor_multiplier: adaptive_threshold / noise_floor after each update
        safety_multiplier: Lower bound on the decision threshold in noise floors
    """

    def __init__(self,
                 initial_threshold: float,
                 noise_floor: float = 0.001,
                 alpha: float = 0.01,
                 noise_floor_multiplier: float = 5.0,
                 safety_multiplier: float = 3.0):
        self.initial_noise_floor: float = max(0.0, noise_floor)
        self.noise_floor: float = self.initial_noise_floor
        self.adaptive_threshold: float = initial_threshold
        self.alpha: float = alpha
        self.noise_floor_multiplier: float = noise_floor_multiplier
        self.safety_multiplier: float = safety_multiplier

    @property
    def threshold(self) -> float:
        """Effective decision threshold."""
        return max(self.adaptive_threshold, self.safety_multiplier * self.noise_floor)

    @property
    def state(self) -> ThresholdState:
        return ThresholdState(noise_floor=self.noise_floor, adaptive_threshold=self.adaptive_threshold)

    def decide(self, energy: float) -> bool:
        """Return True if energy is strictly above the effective threshold."""
        return energy > self.threshold

    def update(self, energy: float, is_speech_frame: bool) -> None:
        """Feed one frame's energy into the noise floor estimate.

        Args:
            energy: RMS energy of the frame
            is_speech_frame: Decision for the frame; speech frames are ignored
        """
        if is_speech_frame:
            return
        self.noise_floor = self.alpha * max(0.0, energy) + (1 - self.alpha) * self.noise_floor
        self.adaptive_threshold = self.noise_floor_multiplier * self.noise_floor

    def reseed(self, threshold: float) -> None:
        """Overwrite the adaptive threshold, keeping the noise floor."""
        self.adaptive_threshold = threshold

    def reset(self, threshold: float) -> None:
        """Return to the seed noise floor with adaptive_threshold = threshold."""
        self.noise_floor = self.initial_noise_floor
        self.adaptive_threshold = threshold
