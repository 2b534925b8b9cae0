import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .config import DEFAULT_CONFIG, load_config, validate_config
from .EventSinks import LoggingEventSink
from .sound.FileAudioSource import FileAudioSource
from .sound.VoiceActivityDetector import VoiceActivityDetector
from .types import SpeechEvent


class SegmentationPipeline:
    def __init__(self, input_file: str, config_path: Optional[str | Path] = "./config/vad_config.json", verbose: bool = False) -> None:
        """Wire config, file source, detector and logging sink together.

        Args:
            input_file: Path to WAV file to segment
            config_path: Path to configuration JSON file (None: built-in defaults)
            verbose: Enable verbose logging
        """
        self.config: Dict[str, Any] = (load_config(config_path) if config_path is not None
                                       else validate_config(DEFAULT_CONFIG))
        self.verbose: bool = verbose

        self.detector: VoiceActivityDetector = VoiceActivityDetector(
            config=self.config,
            verbose=verbose
        )
        self.sink: LoggingEventSink = LoggingEventSink(self.config['audio']['sample_rate'])
        self.detector.add_subscriber(self.sink)

        logging.info(f"Using file input: {input_file}")
        self.audio_source: FileAudioSource = FileAudioSource(
            config=self.config,
            file_path=input_file,
            verbose=verbose
        )

    def run(self) -> list[SpeechEvent]:
        """Segment the whole file and log a summary.

        Returns:
            Every event emitted during the run
        """
        logging.info("Starting segmentation...")
        try:
            events = self.audio_source.run(self.detector)
        finally:
            self.detector.close()

        logging.info(
            f"Done: {self.sink.segments} segment(s), {self.sink.total_segment_seconds:.2f}s of audio, "
            f"{self.sink.silence_alarms} silence alarm(s) in {self.audio_source.duration_ms / 1000:.2f}s input"
        )
        return events
