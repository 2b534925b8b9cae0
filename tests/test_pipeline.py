# tests/test_pipeline.py
import json

import numpy as np
import pytest
import soundfile as sf

from speech_segmenter.pipeline import SegmentationPipeline
from speech_segmenter.types import SegmentProduced
from tests.audio_fixture import SAMPLE_RATE, make_tone


@pytest.fixture
def two_utterances_wav(tmp_path):
    """Two 1.5s tones separated by 2s of silence."""
    silence = np.zeros(2 * SAMPLE_RATE, dtype=np.float32)
    audio = np.concatenate([silence, make_tone(1.5), silence, make_tone(1.5), silence])
    path = tmp_path / "two.wav"
    sf.write(str(path), audio, SAMPLE_RATE)
    return path


@pytest.fixture
def config_file(tmp_path, config):
    path = tmp_path / "vad_config.json"
    path.write_text(json.dumps(config), encoding='utf-8')
    return path


def test_pipeline_segments_file(two_utterances_wav, config_file):
    pipeline = SegmentationPipeline(str(two_utterances_wav), config_path=config_file)

    events = pipeline.run()

    segments = [e for e in events if isinstance(e, SegmentProduced)]
    assert len(segments) == 2
    assert pipeline.sink.segments == 2
    assert pipeline.sink.speech_starts == 2
    assert segments[0].start_timestamp_ms < segments[1].start_timestamp_ms


def test_pipeline_closes_detector(two_utterances_wav, config_file):
    pipeline = SegmentationPipeline(str(two_utterances_wav), config_path=config_file)
    pipeline.run()

    assert pipeline.detector.feed(np.ones(480, dtype=np.float32)) == []


def test_pipeline_without_config_uses_defaults(two_utterances_wav):
    pipeline = SegmentationPipeline(str(two_utterances_wav), config_path=None)

    assert pipeline.config['audio']['sample_rate'] == 16000
    assert pipeline.detector.start_delay_ms == 300
    assert pipeline.detector.max_segment_ms == 3000


def test_pipeline_missing_config_raises(two_utterances_wav, tmp_path):
    with pytest.raises(FileNotFoundError):
        SegmentationPipeline(str(two_utterances_wav), config_path=tmp_path / "nope.json")


def test_pipeline_logs_summary(two_utterances_wav, config_file, caplog):
    with caplog.at_level("INFO"):
        SegmentationPipeline(str(two_utterances_wav), config_path=config_file).run()

    assert "Done: 2 segment(s)" in caplog.text
