"""Type definitions for the speech segmentation engine."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Union
import numpy as np
import numpy.typing as npt


class InvalidSampleError(ValueError):
    """Raised when an incoming sample block cannot be classified.

    Non-finite amplitudes (NaN, +/-inf) and multi-dimensional blocks are
    rejected at the frame assembler boundary so they never reach the
    energy computations.
    """


class FrameClass(Enum):
    """Coarse per-frame label derived from energy and zero-crossing rate."""
    SILENCE = 'silence'
    VOICED = 'voiced'
    UNVOICED = 'unvoiced'


class SpeechState(Enum):
    """State machine states for the segmentation engine.

    State Transitions:
    - IDLE: No speech detected, waiting for activity
    - CONFIRMING_START: Speech frames seen, onset deadline running
    - ACTIVE: Speech confirmed, segment buffer growing
    - CONFIRMING_END: Non-speech seen during ACTIVE, offset deadline running

    Transition Rules:
    IDLE → CONFIRMING_START: First speech frame
    CONFIRMING_START → IDLE: Non-speech frame before the onset deadline
    CONFIRMING_START → ACTIVE: Onset deadline fires
    ACTIVE → CONFIRMING_END: First non-speech frame
    CONFIRMING_END → ACTIVE: Speech resumes before the offset deadline
    CONFIRMING_END → IDLE: Offset deadline fires (segment finalized)
    ACTIVE/CONFIRMING_END → same: max segment deadline splits the segment
    """
    IDLE = auto()
    CONFIRMING_START = auto()
    ACTIVE = auto()
    CONFIRMING_END = auto()


class SegmentEndReason(Enum):
    """Why a segment was finalized."""
    SILENCE = 'silence'
    MAX_DURATION = 'max_duration'


@dataclass(frozen=True)
class FrameFeatures:
    """Scalar descriptors of a single frame.

    Attributes:
        energy: RMS amplitude
        zero_crossing_rate: Fraction of sign changes, in [0, 1]
        spectral_centroid_hz: Coarse time-domain centroid estimate in Hz
        periodicity: Peak autocorrelation past the first lags
        frame_class: SILENCE, VOICED or UNVOICED
        is_speech_likely: energy above the absolute floor and not SILENCE
    """
    energy: float
    zero_crossing_rate: float
    spectral_centroid_hz: float
    periodicity: float
    frame_class: FrameClass
    is_speech_likely: bool


@dataclass(frozen=True)
class ThresholdState:
    """Snapshot of the adaptive threshold estimator."""
    noise_floor: float
    adaptive_threshold: float


@dataclass(frozen=True)
class SpeechStarted:
    """Speech onset confirmed.

    Attributes:
        timestamp_ms: Time the onset was confirmed (clock milliseconds)
        continued: True when this segment continues one cut at max duration
    """
    timestamp_ms: float
    continued: bool = False


@dataclass(frozen=True, eq=False)
class SegmentProduced:
    """Finalized speech segment ready for transcription.

    Attributes:
        samples: Segment audio as float32 numpy array (pre-roll included)
        duration_ms: Elapsed time between segment start and finalization
        start_timestamp_ms: Time the segment was opened (clock milliseconds)
        reason: SILENCE for offset confirmation, MAX_DURATION for a force-cut
    """
    samples: npt.NDArray[np.float32]
    duration_ms: float
    start_timestamp_ms: float
    reason: SegmentEndReason


@dataclass(frozen=True)
class ProlongedSilence:
    """No speech frame observed for the configured silence timeout.

    Attributes:
        timestamp_ms: Time the alarm fired
        silence_ms: Elapsed time since the last speech frame
    """
    timestamp_ms: float
    silence_ms: float


# Tagged union of everything the detector reports
SpeechEvent = Union[SpeechStarted, SegmentProduced, ProlongedSilence]


@dataclass(frozen=True)
class DetectorStatus:
    """Diagnostic snapshot returned by VoiceActivityDetector.get_status()."""
    state: SpeechState
    is_speaking: bool
    buffer_samples: int
    buffer_duration_s: float
    noise_floor: float
    adaptive_threshold: float
    pending_samples: int
