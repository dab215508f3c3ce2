"""Audio capture module."""

from .base import AbstractAudioCapture
from .capture import MicrophoneCapture

__all__ = [
    'AbstractAudioCapture',
    'MicrophoneCapture'
]
