# speech_segmenter/sound/VoiceActivityDetector.py
"""
Tests for this module:
- tests/test_vad_state_machine.py - State transitions and deadlines
- tests/test_vad_timing.py - Onset/offset/max-duration/silence-alarm timing
- tests/test_vad_buffering.py - Pre-roll, bounded idle buffer, segment payloads
"""
from __future__ import annotations
import math
import time
import logging
import numpy as np
import numpy.typing as npt
from collections import deque
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from ..config import VAD_DEFAULTS
from ..types import (
    DetectorStatus,
    ProlongedSilence,
    SegmentEndReason,
    SegmentProduced,
    SpeechEvent,
    SpeechStarted,
    SpeechState,
)
from .AdaptiveThreshold import AdaptiveThreshold
from .Deadline import Deadline
from .FrameAssembler import FrameAssembler, validate_samples
from .FrameFeatures import calculate_energy

if TYPE_CHECKING:
    from ..protocols import SpeechEventSubscriber


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class VoiceActivityDetector:
    """Energy-based speech segmenter with hysteresis deadlines.

    Consumes sample blocks, classifies 30ms frames against an adaptive
    energy threshold and turns the decisions into utterance segments.

    Deadlines (absolute clock milliseconds, checked on every feed/poll):
    - onset: start_delay_ms after the first speech frame → ACTIVE
    - offset: end_delay_ms after the first non-speech frame in ACTIVE → finalize
    - max segment: max_segment_ms after segment start → cut and continue
    - silence alarm: silence_timeout_ms after the last speech frame → ProlongedSilence

    Each deadline carries a generation token. A handler only runs if the
    generation it was collected with is still current, so a cancelled
    deadline never acts, even when cancellation races with collection.

    Buffering:
    - IDLE: rolling ring holding the last pre_roll_ms of frames
    - CONFIRMING_START: ring contents + every new frame
    - onset: trimmed to the trailing pre_roll_ms of samples
    - ACTIVE/CONFIRMING_END: every frame appended until finalization

    Not thread-safe; callers on several threads must serialize access.

    Args:
        config: Configuration dictionary ('audio' and 'vad' sections)
        clock: Callable returning monotonic milliseconds (default: time.monotonic)
        verbose: Enable verbose logging
    """

    def __init__(self,
                 config: Dict[str, Any],
                 clock: Optional[Callable[[], float]] = None,
                 verbose: bool = False):
        vad_config = {**VAD_DEFAULTS, **config.get('vad', {})}

        self.sample_rate: int = config['audio']['sample_rate']
        self.frame_duration_ms: float = vad_config['frame_duration_ms']
        self.frame_size: int = int(self.sample_rate * self.frame_duration_ms / 1000)

        self.energy_threshold: float = vad_config['energy_threshold']
        self.silence_timeout_ms: float = vad_config['silence_timeout_ms']
        self.start_delay_ms: float = vad_config['start_delay_ms']
        self.end_delay_ms: float = vad_config['end_delay_ms']
        self.max_segment_ms: float = vad_config['max_segment_ms']
        self.min_segment_ms: float = vad_config['min_segment_ms']
        self.pre_roll_ms: float = vad_config['pre_roll_ms']
        self.pre_roll_samples: int = int(self.sample_rate * self.pre_roll_ms / 1000)

        self.clock: Callable[[], float] = clock or _monotonic_ms
        self.verbose: bool = verbose

        self.assembler = FrameAssembler(self.frame_size)
        self.threshold = AdaptiveThreshold(
            initial_threshold=self.energy_threshold,
            noise_floor=vad_config['initial_noise_floor'],
            alpha=vad_config['ema_alpha'],
            noise_floor_multiplier=vad_config['noise_floor_multiplier']
        )

        self._onset = Deadline('onset')
        self._offset = Deadline('offset')
        self._max_segment = Deadline('max_segment')
        self._silence_alarm = Deadline('silence_alarm')
        # Tie order when several deadlines share a due time: the max-duration
        # cut wins over the offset finalization
        self._deadlines: list[tuple[Deadline, Callable[[float], None]]] = [
            (self._max_segment, self._on_max_segment),
            (self._offset, self._on_offset),
            (self._onset, self._on_onset),
            (self._silence_alarm, self._on_silence_alarm),
        ]

        idle_frames = math.ceil(self.pre_roll_samples / self.frame_size)
        self._idle_buffer: deque[npt.NDArray[np.float32]] = deque(maxlen=idle_frames)
        self._segment_frames: list[npt.NDArray[np.float32]] = []

        self.state: SpeechState = SpeechState.IDLE
        self.segment_start_ms: Optional[float] = None
        self.last_speech_ms: Optional[float] = None

        self._subscribers: list[SpeechEventSubscriber] = []
        self._outbox: list[SpeechEvent] = []
        self._closed: bool = False

    @property
    def is_speaking(self) -> bool:
        """Check if speech is logically ongoing (ACTIVE or CONFIRMING_END)."""
        return self.state in (SpeechState.ACTIVE, SpeechState.CONFIRMING_END)

    @property
    def noise_floor(self) -> float:
        return self.threshold.noise_floor

    @property
    def adaptive_threshold(self) -> float:
        return self.threshold.adaptive_threshold

    def add_subscriber(self, subscriber: SpeechEventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def remove_subscriber(self, subscriber: SpeechEventSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    # ========================================================================
    # Public entry points
    # ========================================================================

    def feed(self, samples, now_ms: Optional[float] = None) -> list[SpeechEvent]:
        """Process a block of samples of any length.

        Complete frames are classified in arrival order; the rest waits in
        the assembler. Deadlines due at `now_ms` fire before the first frame.
        An empty block acts as a plain poll.

        Args:
            samples: 1-D block of normalized float samples
            now_ms: Timestamp for this block; read from the clock if None

        Returns:
            Events emitted while processing this block

        Raises:
            InvalidSampleError: If the block holds non-finite values
        """
        if self._closed:
            return []
        frames = self.assembler.feed(samples)
        now = self._now(now_ms)

        events: list[SpeechEvent] = []
        self._outbox = events
        for frame in frames:
            self._process_frame(frame, now)
        self._fire_due_deadlines(now)
        return events

    def poll(self, now_ms: Optional[float] = None) -> list[SpeechEvent]:
        """Fire every deadline due at `now_ms` without feeding audio."""
        if self._closed:
            return []
        events: list[SpeechEvent] = []
        self._outbox = events
        self._fire_due_deadlines(self._now(now_ms))
        return events

    def process_frame(self, frame, now_ms: Optional[float] = None) -> list[SpeechEvent]:
        """Classify one already-assembled frame (bypasses the assembler).

        Raises:
            InvalidSampleError: If the frame is not 1-D or holds non-finite values
        """
        if self._closed:
            return []
        frame = validate_samples(frame).copy()
        events: list[SpeechEvent] = []
        self._outbox = events
        self._process_frame(frame, self._now(now_ms))
        return events

    def flush(self, now_ms: Optional[float] = None) -> list[SpeechEvent]:
        """Finalize the segment in progress at end of stream.

        Active speech is finalized with reason SILENCE under the usual
        min-duration rule; an unconfirmed onset is dropped.
        """
        if self._closed:
            return []
        events: list[SpeechEvent] = []
        self._outbox = events
        now = self._now(now_ms)
        self._fire_due_deadlines(now)

        if self.is_speaking:
            self._offset.cancel()
            self._finalize_segment(now, SegmentEndReason.SILENCE)
            self._max_segment.cancel()
            self.state = SpeechState.IDLE
        elif self.state == SpeechState.CONFIRMING_START:
            self._onset.cancel()
            self._return_to_idle_buffer()
            self.state = SpeechState.IDLE

        if self.verbose:
            logging.debug("VoiceActivityDetector: flush()")
        return events

    def reset(self) -> None:
        """Cancel every deadline and clear all buffers and timestamps.

        The threshold estimator returns to its seed (initial noise floor,
        configured energy threshold), so later input behaves as it would on
        a fresh instance.
        """
        for deadline, _ in self._deadlines:
            deadline.cancel()
        self.assembler.clear()
        self.threshold.reset(self.energy_threshold)
        self._idle_buffer.clear()
        self._segment_frames = []
        self.state = SpeechState.IDLE
        self.segment_start_ms = None
        self.last_speech_ms = None

        if self.verbose:
            logging.debug("VoiceActivityDetector: reset()")

    def close(self) -> None:
        """Release pending deadlines; further input is ignored."""
        self.reset()
        self._subscribers.clear()
        self._closed = True

    def update_config(self,
                      energy_threshold: Optional[float] = None,
                      silence_timeout_ms: Optional[float] = None) -> None:
        """Change threshold seed and/or silence timeout without losing state.

        The adaptive threshold is overwritten with the (new or current)
        energy threshold immediately. A running silence alarm is re-armed
        against the new timeout.

        A silence_timeout_ms of 0 or less disables the alarm, the same as in
        the configuration file; None keeps the current value.
        """
        if energy_threshold is not None:
            self.energy_threshold = energy_threshold
        if silence_timeout_ms is not None:
            self.silence_timeout_ms = silence_timeout_ms
            if self._silence_alarm.armed and self.last_speech_ms is not None:
                self._arm_silence_alarm(self.last_speech_ms)
        self.threshold.reseed(self.energy_threshold)

        if self.verbose:
            logging.debug(
                f"VoiceActivityDetector: config updated energy_threshold={self.energy_threshold} "
                f"silence_timeout_ms={self.silence_timeout_ms}"
            )

    def get_status(self) -> DetectorStatus:
        if self.state == SpeechState.IDLE:
            buffered = sum(len(frame) for frame in self._idle_buffer)
        else:
            buffered = sum(len(frame) for frame in self._segment_frames)
        return DetectorStatus(
            state=self.state,
            is_speaking=self.is_speaking,
            buffer_samples=buffered,
            buffer_duration_s=buffered / self.sample_rate,
            noise_floor=self.threshold.noise_floor,
            adaptive_threshold=self.threshold.adaptive_threshold,
            pending_samples=self.assembler.pending
        )

    # ========================================================================
    # Frame processing
    # ========================================================================

    def _now(self, now_ms: Optional[float]) -> float:
        return self.clock() if now_ms is None else now_ms

    def _process_frame(self, frame: npt.NDArray[np.float32], now: float) -> None:
        """Run one frame through the state machine.

        Deadlines due at `now` fire first so a decision that expired
        between frames is settled before this frame is judged.
        """
        self._fire_due_deadlines(now)

        energy = calculate_energy(frame)
        is_speech = self.threshold.decide(energy)
        self.threshold.update(energy, is_speech)

        match self.state:
            case SpeechState.IDLE:
                if is_speech:
                    # IDLE → CONFIRMING_START
                    self._onset.arm(now + self.start_delay_ms)
                    self._segment_frames = list(self._idle_buffer)
                    self._segment_frames.append(frame)
                    self._idle_buffer.clear()
                    self.state = SpeechState.CONFIRMING_START
                    if self.verbose:
                        logging.debug(f"VoiceActivityDetector: speech frame at {now:.0f}ms, energy={energy:.4f}, confirming")
                else:
                    self._idle_buffer.append(frame)

            case SpeechState.CONFIRMING_START:
                self._segment_frames.append(frame)
                if not is_speech:
                    # CONFIRMING_START → IDLE
                    self._onset.cancel()
                    self._return_to_idle_buffer()
                    self.state = SpeechState.IDLE
                    if self.verbose:
                        logging.debug(f"VoiceActivityDetector: onset rejected at {now:.0f}ms")

            case SpeechState.ACTIVE:
                self._segment_frames.append(frame)
                if is_speech:
                    self._offset.cancel()
                else:
                    # ACTIVE → CONFIRMING_END
                    self._offset.arm(now + self.end_delay_ms)
                    self.state = SpeechState.CONFIRMING_END

            case SpeechState.CONFIRMING_END:
                self._segment_frames.append(frame)
                if is_speech:
                    # CONFIRMING_END → ACTIVE
                    self._offset.cancel()
                    self.state = SpeechState.ACTIVE

        if is_speech:
            self.last_speech_ms = now
            self._arm_silence_alarm(now)

    def _fire_due_deadlines(self, now: float) -> None:
        """Fire due deadlines one at a time in due-time order.

        The candidate list is rebuilt after every handler; a handler may
        cancel or arm other deadlines.
        """
        while True:
            due = [
                (deadline.due_ms, priority, deadline, deadline.generation, handler)
                for priority, (deadline, handler) in enumerate(self._deadlines)
                if deadline.is_due(now)
            ]
            if not due:
                return
            due_ms, _, deadline, generation, handler = min(due, key=lambda item: (item[0], item[1]))
            if deadline.consume(generation):
                handler(due_ms)

    # ========================================================================
    # Deadline handlers
    # ========================================================================

    def _on_onset(self, fired_ms: float) -> None:
        if self.state != SpeechState.CONFIRMING_START:
            return
        # CONFIRMING_START → ACTIVE
        self.state = SpeechState.ACTIVE
        self._trim_to_pre_roll()
        self.segment_start_ms = fired_ms
        self._arm_max_segment(fired_ms)

        if self.verbose:
            logging.debug(f"----------------------------")
            logging.debug(f"VoiceActivityDetector: speech started at {fired_ms:.0f}ms")
            logging.debug(f"  pre-roll={self._buffered_samples()} samples")
        self._emit(SpeechStarted(timestamp_ms=fired_ms))

    def _on_offset(self, fired_ms: float) -> None:
        if not self.is_speaking:
            return
        # CONFIRMING_END → IDLE
        self._max_segment.cancel()
        self._finalize_segment(fired_ms, SegmentEndReason.SILENCE)
        self.state = SpeechState.IDLE

    def _on_max_segment(self, fired_ms: float) -> None:
        if not self.is_speaking:
            return
        if self.verbose:
            logging.debug(f"----------------------------")
            logging.debug(f"VoiceActivityDetector: max segment duration reached, splitting at {fired_ms:.0f}ms")

        self._finalize_segment(fired_ms, SegmentEndReason.MAX_DURATION)

        # Continue without onset delay; a pending offset keeps running
        self.segment_start_ms = fired_ms
        self._arm_max_segment(fired_ms)
        self._emit(SpeechStarted(timestamp_ms=fired_ms, continued=True))

    def _on_silence_alarm(self, fired_ms: float) -> None:
        if self.last_speech_ms is None:
            return
        silence_ms = fired_ms - self.last_speech_ms
        if self.verbose:
            logging.debug(f"VoiceActivityDetector: no speech for {silence_ms:.0f}ms")
        self._emit(ProlongedSilence(timestamp_ms=fired_ms, silence_ms=silence_ms))

    # ========================================================================
    # Helper Methods for State Machine
    # ========================================================================

    def _arm_max_segment(self, start_ms: float) -> None:
        if self.max_segment_ms > 0:
            self._max_segment.rearm(start_ms + self.max_segment_ms)
        else:
            self._max_segment.cancel()

    def _arm_silence_alarm(self, last_speech_ms: float) -> None:
        if self.silence_timeout_ms and self.silence_timeout_ms > 0:
            self._silence_alarm.rearm(last_speech_ms + self.silence_timeout_ms)
        else:
            self._silence_alarm.cancel()

    def _buffered_samples(self) -> int:
        return sum(len(frame) for frame in self._segment_frames)

    def _concatenate_segment(self) -> npt.NDArray[np.float32]:
        if not self._segment_frames:
            return np.array([], dtype=np.float32)
        return np.concatenate(self._segment_frames).astype(np.float32, copy=False)

    def _trim_to_pre_roll(self) -> None:
        """Keep only the trailing pre_roll_samples of the segment buffer."""
        data = self._concatenate_segment()
        keep = min(len(data), self.pre_roll_samples)
        self._segment_frames = [data[len(data) - keep:]] if keep else []

    def _return_to_idle_buffer(self) -> None:
        """Move the unconfirmed onset frames back into the rolling idle ring."""
        self._idle_buffer.clear()
        self._idle_buffer.extend(self._segment_frames)
        self._segment_frames = []

    def _finalize_segment(self, now: float, reason: SegmentEndReason) -> None:
        """Emit the buffered segment (subject to the min-duration rule) and reset it.

        Max-duration cuts are always emitted; offset finalizations shorter
        than min_segment_ms are discarded.

        Args:
            now: Finalization time in clock milliseconds
            reason: SILENCE or MAX_DURATION
        """
        start = self.segment_start_ms if self.segment_start_ms is not None else now
        duration_ms = now - start
        samples = self._concatenate_segment()
        self._segment_frames = []
        self.segment_start_ms = None

        if reason == SegmentEndReason.MAX_DURATION or duration_ms >= self.min_segment_ms:
            if self.verbose:
                logging.debug(
                    f"VoiceActivityDetector: emitting segment reason={reason.value} "
                    f"duration={duration_ms:.0f}ms samples={len(samples)}"
                )
            self._emit(SegmentProduced(
                samples=samples,
                duration_ms=duration_ms,
                start_timestamp_ms=start,
                reason=reason
            ))
        elif self.verbose:
            logging.debug(
                f"VoiceActivityDetector: discarding short segment duration={duration_ms:.0f}ms "
                f"< min={self.min_segment_ms}ms"
            )

    def _emit(self, event: SpeechEvent) -> None:
        self._outbox.append(event)
        for subscriber in list(self._subscribers):
            match event:
                case SpeechStarted():
                    subscriber.on_speech_started(event)
                case SegmentProduced():
                    subscriber.on_segment_produced(event)
                case ProlongedSilence():
                    subscriber.on_prolonged_silence(event)
