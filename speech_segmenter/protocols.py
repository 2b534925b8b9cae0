"""Protocol definitions for speech segmenter consumers.

This module defines structural interfaces using Python's Protocol for duck typing.
"""

from typing import Protocol
from speech_segmenter.types import ProlongedSilence, SegmentProduced, SpeechStarted


class SpeechEventSubscriber(Protocol):
    """Subscriber interface for detector notifications.

    Components implementing this protocol can be registered with
    VoiceActivityDetector.add_subscriber(). The protocol uses structural
    subtyping, so classes don't need explicit inheritance - just matching
    method signatures.

    Thread Safety:
        Methods are called synchronously on the thread that feeds the
        detector, in the order the events occur.
    """

    def on_speech_started(self, event: SpeechStarted) -> None:
        """Handle confirmed speech onset.

        Called once per confirmed onset, including the continuation
        segment opened right after a max-duration cut (event.continued).

        Args:
            event: SpeechStarted notification
        """
        ...

    def on_segment_produced(self, event: SegmentProduced) -> None:
        """Handle a finalized segment.

        Args:
            event: SegmentProduced carrying samples, duration and reason
        """
        ...

    def on_prolonged_silence(self, event: ProlongedSilence) -> None:
        """Handle the silence alarm (at most once per silence episode).

        Args:
            event: ProlongedSilence notification
        """
        ...
