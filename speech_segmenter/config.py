"""Configuration loading for the speech segmenter.

Configuration is a nested dictionary loaded from JSON
(config/vad_config.json):

    {
        "audio": {"sample_rate": 16000},
        "vad": {"energy_threshold": 0.01, "silence_timeout_ms": 10000, ...}
    }

Only audio.sample_rate is required; every 'vad' key falls back to
VAD_DEFAULTS.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict

VAD_DEFAULTS: Dict[str, Any] = {
    'energy_threshold': 0.01,
    'silence_timeout_ms': 10000,
    'frame_duration_ms': 30,
    'start_delay_ms': 300,
    'end_delay_ms': 1000,
    'max_segment_ms': 3000,
    'min_segment_ms': 1000,
    'pre_roll_ms': 300,
    'ema_alpha': 0.01,
    'noise_floor_multiplier': 5,
    'initial_noise_floor': 0.001,
}

DEFAULT_CONFIG: Dict[str, Any] = {
    'audio': {
        'sample_rate': 16000,
    },
    'vad': dict(VAD_DEFAULTS),
}

_NON_NEGATIVE_KEYS = (
    'energy_threshold',
    'silence_timeout_ms',
    'start_delay_ms',
    'end_delay_ms',
    'max_segment_ms',
    'min_segment_ms',
    'pre_roll_ms',
    'initial_noise_floor',
)


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check value ranges and fill missing 'vad' keys with defaults.

    Args:
        config: Configuration dictionary

    Returns:
        A new dictionary with defaults applied

    Raises:
        ValueError: If a value is out of range or audio.sample_rate is missing
    """
    audio = config.get('audio') or {}
    if 'sample_rate' not in audio:
        raise ValueError("Config is missing audio.sample_rate")
    if audio['sample_rate'] <= 0:
        raise ValueError(f"audio.sample_rate must be positive, got {audio['sample_rate']}")

    vad = {**VAD_DEFAULTS, **(config.get('vad') or {})}

    for key in _NON_NEGATIVE_KEYS:
        if vad[key] < 0:
            raise ValueError(f"vad.{key} must be >= 0, got {vad[key]}")
    if vad['frame_duration_ms'] <= 0:
        raise ValueError(f"vad.frame_duration_ms must be positive, got {vad['frame_duration_ms']}")
    if vad['max_segment_ms'] <= 0:
        raise ValueError(f"vad.max_segment_ms must be positive, got {vad['max_segment_ms']}")
    if int(audio['sample_rate'] * vad['frame_duration_ms'] / 1000) < 1:
        raise ValueError("vad.frame_duration_ms is shorter than one sample")
    if not 0 < vad['ema_alpha'] <= 1:
        raise ValueError(f"vad.ema_alpha must be in (0, 1], got {vad['ema_alpha']}")
    if vad['noise_floor_multiplier'] <= 0:
        raise ValueError(f"vad.noise_floor_multiplier must be positive, got {vad['noise_floor_multiplier']}")

    validated = copy.deepcopy(config)
    validated['audio'] = dict(audio)
    validated['vad'] = vad
    return validated


def load_config(config_path: str | Path) -> Dict[str, Any]:
    """Load and validate configuration from a JSON file.

    Args:
        config_path: Path to vad_config.json

    Returns:
        Configuration dictionary with defaults applied

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a value is out of range
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        return validate_config(json.load(f))
