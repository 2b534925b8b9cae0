# tests/conftest.py
import logging
import pytest
import numpy as np

from tests.audio_fixture import SAMPLE_RATE, FakeClock


@pytest.fixture
def config():
    """Provide standard test configuration matching config/vad_config.json.

    Returns:
        Dict: Configuration dictionary
    """
    return {
        'audio': {
            'sample_rate': SAMPLE_RATE
        },
        'vad': {
            'energy_threshold': 0.01,
            'silence_timeout_ms': 10000,
            'frame_duration_ms': 30,
            'start_delay_ms': 300,
            'end_delay_ms': 1000,
            'max_segment_ms': 3000,
            'min_segment_ms': 1000,
            'pre_roll_ms': 300
        }
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def vad(config, clock):
    """VoiceActivityDetector driven by the fake clock."""
    from speech_segmenter.sound.VoiceActivityDetector import VoiceActivityDetector
    return VoiceActivityDetector(config=config, clock=clock, verbose=False)


@pytest.fixture
def noise_audio():
    """Generate 1 second of low-level background noise for testing.

    Returns:
        np.ndarray: Noise audio as float32 array, shape (16000,)
    """
    rng = np.random.default_rng(1234)
    return (rng.standard_normal(SAMPLE_RATE) * 0.001).astype(np.float32)


@pytest.fixture
def restore_root_logging():
    """Put root logger handlers and level back after tests that reconfigure logging."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
