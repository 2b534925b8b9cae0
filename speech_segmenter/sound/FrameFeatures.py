# speech_segmenter/sound/FrameFeatures.py
"""Per-frame audio descriptors.

All functions are pure: they read one frame and return a value, keeping no
state between calls. The spectral centroid and periodicity estimates are
coarse time-domain heuristics; they are not a substitute for an FFT-based
analysis.

Tests for this module:
- tests/test_frame_features.py
"""
import numpy as np
import numpy.typing as npt

from ..types import FrameClass, FrameFeatures

# Absolute RMS below which a frame is labelled silence
SILENCE_ENERGY_FLOOR = 0.01
# Zero-crossing rate above which a non-silent frame is labelled unvoiced
UNVOICED_ZCR_THRESHOLD = 0.1
# Lags skipped before searching the autocorrelation peak
PERIODICITY_LAG_SKIP = 20


def _as_float_array(frame) -> npt.NDArray[np.float64]:
    return np.asarray(frame, dtype=np.float64)


def calculate_energy(frame) -> float:
    """Root-mean-square amplitude of the frame (0.0 for an empty frame)."""
    x = _as_float_array(frame)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def calculate_zero_crossing_rate(frame) -> float:
    """Fraction of adjacent sample pairs whose signs differ.

    Zero counts as positive. The count is divided by the frame length, so
    an alternating +/-A frame of n samples yields exactly (n-1)/n.
    """
    x = _as_float_array(frame)
    if x.size < 2:
        return 0.0
    non_negative = x >= 0
    crossings = np.count_nonzero(non_negative[1:] != non_negative[:-1])
    return crossings / x.size


def calculate_spectral_centroid(frame, sample_rate: int) -> float:
    """Amplitude-weighted sample-index centroid scaled into Hz.

    This is NOT a Fourier-domain centroid. It weights each sample index by
    its absolute amplitude and maps the mean index onto [0, sample_rate/2).
    Good enough to rank frames against each other, meaningless as an
    absolute frequency.

    Args:
        frame: Audio frame
        sample_rate: Sample rate in Hz

    Returns:
        Approximate centroid in Hz, 0.0 for an all-zero frame
    """
    x = _as_float_array(frame)
    magnitudes = np.abs(x)
    magnitude_sum = magnitudes.sum()
    if magnitude_sum <= 0:
        return 0.0
    weighted_sum = np.dot(magnitudes, np.arange(x.size))
    return float((weighted_sum / magnitude_sum) * (sample_rate / 2) / x.size)


def autocorrelation(frame, max_lag: int) -> npt.NDArray[np.float64]:
    """Normalized autocorrelation for lags 0..max_lag-1.

    Each value is sum(x[i] * x[i + lag]) / (n - lag).
    """
    x = _as_float_array(frame)
    n = x.size
    max_lag = max(0, min(max_lag, n))
    result = np.zeros(max_lag, dtype=np.float64)
    for lag in range(max_lag):
        result[lag] = np.dot(x[:n - lag], x[lag:]) / (n - lag)
    return result


def calculate_periodicity(frame) -> float:
    """Peak autocorrelation over lags PERIODICITY_LAG_SKIP..n/2.

    The first lags are skipped so the zero-lag peak does not dominate.
    Returns 0.0 when the frame is too short to have any lag past the skip.
    """
    x = _as_float_array(frame)
    values = autocorrelation(x, x.size // 2)
    if values.size <= PERIODICITY_LAG_SKIP:
        return 0.0
    return float(values[PERIODICITY_LAG_SKIP:].max())


def classify_frame(frame, energy: float) -> FrameClass:
    """Label a frame as silence, voiced or unvoiced.

    Diagnostic only; the detector gates speech on the adaptive energy
    threshold, not on this label.

    Args:
        frame: Audio frame
        energy: Precomputed RMS of the frame

    Returns:
        SILENCE below the absolute energy floor, UNVOICED for high ZCR
        (fricatives), VOICED otherwise (vowels)
    """
    if energy < SILENCE_ENERGY_FLOOR:
        return FrameClass.SILENCE
    if calculate_zero_crossing_rate(frame) > UNVOICED_ZCR_THRESHOLD:
        return FrameClass.UNVOICED
    return FrameClass.VOICED


def apply_pre_emphasis(frame, coefficient: float = 0.97) -> npt.NDArray[np.float64]:
    """First-order high-pass: y[0] = x[0], y[i] = x[i] - c * x[i-1]."""
    x = _as_float_array(frame)
    if x.size == 0:
        return x.copy()
    result = np.empty_like(x)
    result[0] = x[0]
    result[1:] = x[1:] - coefficient * x[:-1]
    return result


def calculate_frame_energy(frame, use_pre_emphasis: bool = False) -> float:
    """RMS energy, optionally measured after pre-emphasis."""
    processed = apply_pre_emphasis(frame) if use_pre_emphasis else frame
    return calculate_energy(processed)


def calculate_energy_contour(audio, frame_size: int, hop_size: int) -> npt.NDArray[np.float64]:
    """Short-term RMS energy for each hop-spaced frame of a signal.

    Args:
        audio: Audio signal
        frame_size: Frame size in samples
        hop_size: Hop size in samples

    Returns:
        One RMS value per full frame; empty if the signal is shorter than a frame
    """
    x = _as_float_array(audio)
    if frame_size <= 0 or hop_size <= 0 or x.size < frame_size:
        return np.zeros(0, dtype=np.float64)
    num_frames = (x.size - frame_size) // hop_size + 1
    return np.array([
        calculate_energy(x[i * hop_size:i * hop_size + frame_size])
        for i in range(num_frames)
    ])


def extract_features(frame, sample_rate: int) -> FrameFeatures:
    """Bundle all per-frame descriptors into a FrameFeatures record."""
    energy = calculate_energy(frame)
    frame_class = classify_frame(frame, energy)
    return FrameFeatures(
        energy=energy,
        zero_crossing_rate=calculate_zero_crossing_rate(frame),
        spectral_centroid_hz=calculate_spectral_centroid(frame, sample_rate),
        periodicity=calculate_periodicity(frame),
        frame_class=frame_class,
        is_speech_likely=energy > SILENCE_ENERGY_FLOOR and frame_class in (FrameClass.VOICED, FrameClass.UNVOICED)
    )
