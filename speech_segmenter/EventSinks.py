# speech_segmenter/EventSinks.py
"""Ready-made SpeechEventSubscriber implementations.

Tests for this module:
- tests/test_event_sinks.py
"""
import logging
import queue

from .types import ProlongedSilence, SegmentProduced, SpeechEvent, SpeechStarted


class QueueEventSink:
    """Forwards detector events to a queue for a consumer thread.

    Uses put_nowait so the audio path never blocks on a slow consumer;
    events that do not fit are counted in dropped_events.

    Args:
        event_queue: Queue receiving SpeechEvent objects
        verbose: Log a warning for every dropped event
    """

    def __init__(self, event_queue: queue.Queue, verbose: bool = False):
        self.event_queue: queue.Queue = event_queue
        self.verbose: bool = verbose
        self.dropped_events: int = 0

    def _put_nonblocking(self, event: SpeechEvent) -> None:
        try:
            self.event_queue.put_nowait(event)
        except queue.Full:
            self.dropped_events += 1
            if self.verbose:
                logging.warning(
                    f"QueueEventSink: event_queue full, dropped {type(event).__name__} "
                    f"(total drops: {self.dropped_events})"
                )

    def on_speech_started(self, event: SpeechStarted) -> None:
        self._put_nonblocking(event)

    def on_segment_produced(self, event: SegmentProduced) -> None:
        self._put_nonblocking(event)

    def on_prolonged_silence(self, event: ProlongedSilence) -> None:
        self._put_nonblocking(event)


class LoggingEventSink:
    """Logs every event and keeps simple counters for a run summary."""

    def __init__(self, sample_rate: int):
        self.sample_rate: int = sample_rate
        self.speech_starts: int = 0
        self.segments: int = 0
        self.silence_alarms: int = 0
        self.total_segment_seconds: float = 0.0

    def on_speech_started(self, event: SpeechStarted) -> None:
        self.speech_starts += 1
        kind = "continued" if event.continued else "started"
        logging.info(f"Speech {kind} at {event.timestamp_ms / 1000:.2f}s")

    def on_segment_produced(self, event: SegmentProduced) -> None:
        self.segments += 1
        seconds = len(event.samples) / self.sample_rate
        self.total_segment_seconds += seconds
        logging.info(
            f"Segment #{self.segments}: start={event.start_timestamp_ms / 1000:.2f}s "
            f"duration={event.duration_ms:.0f}ms audio={seconds:.2f}s reason={event.reason.value}"
        )

    def on_prolonged_silence(self, event: ProlongedSilence) -> None:
        self.silence_alarms += 1
        logging.info(f"Prolonged silence: {event.silence_ms / 1000:.1f}s without speech")
