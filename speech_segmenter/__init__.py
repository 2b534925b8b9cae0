# speech_segmenter/__init__.py
from .config import load_config
from .EventSinks import LoggingEventSink, QueueEventSink
from .sound.VoiceActivityDetector import VoiceActivityDetector
from .types import (
    FrameClass,
    InvalidSampleError,
    ProlongedSilence,
    SegmentEndReason,
    SegmentProduced,
    SpeechStarted,
    SpeechState,
)

__all__ = [
    'load_config',
    'LoggingEventSink',
    'QueueEventSink',
    'VoiceActivityDetector',
    'FrameClass',
    'InvalidSampleError',
    'ProlongedSilence',
    'SegmentEndReason',
    'SegmentProduced',
    'SpeechStarted',
    'SpeechState',
]
