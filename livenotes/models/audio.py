"""Audio-related data models."""

from dataclasses import dataclass, field
import time


@dataclass
class AudioChunk:
    """One opaque encoded audio segment, consumed exactly once by the sequencer."""
    payload: bytes
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    timestamp: float = field(default_factory=time.time)  # Unix time the chunk was handed over

    @property
    def duration_seconds(self) -> float:
        # 16-bit PCM, 2 bytes per sample
        bytes_per_second = self.sample_rate * self.channels * 2
        return len(self.payload) / bytes_per_second if bytes_per_second else 0.0


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_frames: int
    total_chunks: int
    peak_level: float = 0.0
