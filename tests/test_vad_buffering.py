# tests/test_vad_buffering.py
"""Pre-roll and buffering behaviour of VoiceActivityDetector."""
import pytest
import numpy as np

from speech_segmenter.sound.VoiceActivityDetector import VoiceActivityDetector
from speech_segmenter.types import SegmentEndReason, SegmentProduced, SpeechState
from tests.audio_fixture import FRAME_MS, FRAME_SIZE, make_silence_frame, make_speech_frame


def segments_of(events):
    return [event for event in events if isinstance(event, SegmentProduced)]


@pytest.fixture
def short_max_config(config):
    """Max duration short enough to cut right after the onset, exposing the pre-roll."""
    config['vad']['max_segment_ms'] = 500
    return config


class TestIdleBuffer:

    def test_idle_buffer_is_bounded_by_pre_roll(self, vad, clock):
        """Long silence keeps only ceil(pre_roll / frame) frames, not the whole stream."""
        for _ in range(100):
            vad.feed(make_silence_frame())
            clock.advance(FRAME_MS)

        status = vad.get_status()
        assert status.state == SpeechState.IDLE
        assert status.buffer_samples == 4800
        assert status.buffer_duration_s == pytest.approx(0.3)

    def test_rejected_onset_returns_frames_to_idle_ring(self, vad, clock):
        for _ in range(5):
            vad.feed(make_silence_frame())
        vad.feed(make_speech_frame())
        vad.feed(make_silence_frame())

        assert vad.state == SpeechState.IDLE
        assert vad.get_status().buffer_samples == 7 * FRAME_SIZE

        for _ in range(10):
            vad.feed(make_silence_frame())
        assert vad.get_status().buffer_samples == 4800

    def test_partial_block_waits_in_assembler(self, vad):
        vad.feed(np.zeros(1000, dtype=np.float32))

        status = vad.get_status()
        assert status.buffer_samples == 2 * FRAME_SIZE
        assert status.pending_samples == 40


class TestPreRoll:

    def test_onset_trims_buffer_to_pre_roll(self, short_max_config, clock):
        vad = VoiceActivityDetector(config=short_max_config, clock=clock)
        for t in range(0, 600, FRAME_MS):
            vad.feed(make_silence_frame(), now_ms=t)
        vad.feed(make_speech_frame(), now_ms=600)

        vad.poll(now_ms=900)
        assert vad.get_status().buffer_samples == 4800

        segments = segments_of(vad.poll(now_ms=1400))
        assert len(segments) == 1
        samples = segments[0].samples
        assert segments[0].reason == SegmentEndReason.MAX_DURATION
        assert len(samples) == 4800
        assert np.all(samples[-FRAME_SIZE:] == 0.5)
        assert np.all(samples[:-FRAME_SIZE] == 0.0)

    def test_pre_roll_is_sample_accurate(self, short_max_config, clock):
        """100ms pre-roll is 1600 samples even though frames are 480 long."""
        short_max_config['vad']['pre_roll_ms'] = 100
        vad = VoiceActivityDetector(config=short_max_config, clock=clock)
        for t in range(0, 300, FRAME_MS):
            vad.feed(make_silence_frame(), now_ms=t)
        vad.feed(make_speech_frame(), now_ms=300)
        vad.poll(now_ms=600)

        segments = segments_of(vad.poll(now_ms=1100))

        assert len(segments[0].samples) == 1600
        assert np.all(segments[0].samples[-FRAME_SIZE:] == 0.5)

    def test_zero_pre_roll_keeps_only_post_onset_frames(self, short_max_config, clock):
        short_max_config['vad']['pre_roll_ms'] = 0
        vad = VoiceActivityDetector(config=short_max_config, clock=clock)
        for t in range(0, 300, FRAME_MS):
            vad.feed(make_silence_frame(), now_ms=t)
        assert vad.get_status().buffer_samples == 0

        vad.feed(make_speech_frame(), now_ms=300)
        vad.poll(now_ms=600)
        vad.feed(make_speech_frame(amplitude=0.4), now_ms=600)

        segments = segments_of(vad.poll(now_ms=1100))

        assert len(segments[0].samples) == FRAME_SIZE
        assert np.allclose(segments[0].samples, 0.4)

    def test_segment_does_not_alias_input(self, short_max_config, clock):
        vad = VoiceActivityDetector(config=short_max_config, clock=clock)
        frame = make_speech_frame()
        vad.feed(frame, now_ms=0)
        vad.poll(now_ms=300)
        frame[:] = 0.0

        segments = segments_of(vad.poll(now_ms=800))

        assert np.all(segments[0].samples == 0.5)


class TestSegmentBuffer:

    def test_buffer_empty_after_finalization(self, vad, clock):
        vad.feed(make_speech_frame(), now_ms=0)
        vad.poll(now_ms=300)
        vad.feed(make_silence_frame(), now_ms=300)
        vad.poll(now_ms=1300)

        assert vad.state == SpeechState.IDLE
        assert vad.get_status().buffer_samples == 0

    def test_max_cut_starts_continuation_empty(self, short_max_config, clock):
        vad = VoiceActivityDetector(config=short_max_config, clock=clock)
        vad.feed(make_speech_frame(), now_ms=0)
        vad.poll(now_ms=300)
        vad.poll(now_ms=800)

        assert vad.state == SpeechState.ACTIVE
        assert vad.get_status().buffer_samples == 0

        vad.feed(make_speech_frame(), now_ms=810)
        assert vad.get_status().buffer_samples == FRAME_SIZE
