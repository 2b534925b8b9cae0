# speech_segmenter/sound/FrameAssembler.py
"""
Tests for this module:
- tests/test_frame_assembler.py
"""
import numpy as np
import numpy.typing as npt

from ..types import InvalidSampleError


def validate_samples(samples) -> npt.NDArray[np.float32]:
    """Convert a sample block to float32 and reject what cannot be classified.

    Raises:
        InvalidSampleError: If the block is not 1-D or holds non-finite values
    """
    block = np.asarray(samples, dtype=np.float32)
    if block.ndim != 1:
        raise InvalidSampleError(f"Expected a 1-D sample block, got shape {block.shape}")
    if block.size and not np.isfinite(block).all():
        bad = int(np.count_nonzero(~np.isfinite(block)))
        raise InvalidSampleError(f"Sample block contains {bad} non-finite value(s)")
    return block


class FrameAssembler:
    """Slices an arbitrary-length sample stream into fixed-size frames.

    Samples that do not fill a whole frame stay in the remainder until the
    next feed() call. Frames come out in arrival order; concatenating every
    returned frame with the final remainder reproduces the input exactly.

    Args:
        frame_size: Frame length in samples (sample_rate * 30ms by default)
    """

    def __init__(self, frame_size: int):
        if frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {frame_size}")
        self.frame_size: int = frame_size
        self._remainder: npt.NDArray[np.float32] = np.zeros(0, dtype=np.float32)

    @property
    def remainder(self) -> npt.NDArray[np.float32]:
        """Buffered samples not yet forming a full frame (copy)."""
        return self._remainder.copy()

    @property
    def pending(self) -> int:
        return len(self._remainder)

    def feed(self, samples) -> list[npt.NDArray[np.float32]]:
        """Append samples and return every complete frame.

        Args:
            samples: 1-D block of normalized float samples

        Returns:
            List of frames (float32 arrays of frame_size samples)

        Raises:
            InvalidSampleError: If the block is not 1-D or holds non-finite values.
                The remainder is left untouched in that case.
        """
        block = validate_samples(samples)

        if block.size == 0:
            return []

        buffer = np.concatenate((self._remainder, block)) if self._remainder.size else block.copy()
        num_frames = len(buffer) // self.frame_size
        consumed = num_frames * self.frame_size

        frames = [buffer[i:i + self.frame_size] for i in range(0, consumed, self.frame_size)]
        self._remainder = buffer[consumed:].copy()
        return frames

    def clear(self) -> None:
        """Drop the buffered remainder."""
        self._remainder = np.zeros(0, dtype=np.float32)
