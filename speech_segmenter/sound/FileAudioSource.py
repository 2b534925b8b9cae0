# speech_segmenter/sound/FileAudioSource.py
from __future__ import annotations
import numpy as np
import numpy.typing as npt
import logging
from typing import Dict, Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from speech_segmenter.sound.VoiceActivityDetector import VoiceActivityDetector
    from speech_segmenter.types import SpeechEvent


class FileAudioSource:
    """File-based audio source for offline segmentation.

    Reads a WAV file and feeds it to a VoiceActivityDetector block by
    block. Time is derived from the sample position instead of the wall
    clock, so a run is reproducible and as fast as the CPU allows.

    Processing steps:
    1. Load audio file using soundfile
    2. Convert to mono if multi-channel (take first channel)
    3. Resample to the configured sample rate if needed
    4. Feed fixed-size blocks with now_ms = block start position
    5. Flush the detector at the end-of-file timestamp

    Args:
        config: Configuration dictionary loaded from vad_config.json
        file_path: Path to WAV file to load
        block_size: Samples per feed() call (default: 30ms worth)
        verbose: Enable verbose logging
    """

    def __init__(self,
                 config: Dict[str, Any],
                 file_path: str,
                 block_size: Optional[int] = None,
                 verbose: bool = False):
        self.file_path: str = file_path
        self.verbose: bool = verbose
        self.sample_rate: int = config['audio']['sample_rate']
        self.block_size: int = block_size or int(self.sample_rate * 0.03)

        self.audio: npt.NDArray[np.float32] = self._load_audio()

        if self.verbose:
            logging.info(
                f"FileAudioSource: loaded {len(self.audio) / self.sample_rate:.2f}s from {file_path}"
            )

    @property
    def duration_ms(self) -> float:
        return len(self.audio) * 1000.0 / self.sample_rate

    def _load_audio(self) -> npt.NDArray[np.float32]:
        """Load audio file, take the first channel, resample if needed.

        Returns:
            Mono float32 audio at self.sample_rate
        """
        import soundfile as sf

        audio, sr = sf.read(self.file_path, dtype='float32')

        if len(audio.shape) > 1:
            audio = audio[:, 0]

        if sr != self.sample_rate:
            from scipy import signal
            num_samples = int(len(audio) * self.sample_rate / sr)
            audio = signal.resample(audio, num_samples).astype(np.float32)

        return np.ascontiguousarray(audio, dtype=np.float32)

    def run(self, detector: VoiceActivityDetector) -> list[SpeechEvent]:
        """Feed the whole file to the detector and flush it.

        Args:
            detector: Detector configured with the same sample rate

        Returns:
            Every event emitted during the run, in order
        """
        events: list[SpeechEvent] = []
        for start in range(0, len(self.audio), self.block_size):
            block = self.audio[start:start + self.block_size]
            events.extend(detector.feed(block, now_ms=start * 1000.0 / self.sample_rate))

        events.extend(detector.flush(now_ms=self.duration_ms))

        if self.verbose:
            logging.info(f"FileAudioSource: finished, {len(events)} events")
        return events
