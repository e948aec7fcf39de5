"""
deepgram_tts - Speak text aloud through Deepgram Aura text-to-speech.

A small CLI utility that sends text to the Deepgram speak endpoint and plays
the audio with the platform's audio player, either after downloading the
whole file or while it streams in.
"""

__version__ = "0.1.0"

from .errors import (
    ConfigError,
    DeliveryError,
    FileSystemError,
    HttpError,
    NetworkError,
    NoPlayerError,
    PlaybackError,
)
from .model import DeliveryConfig, DeliveryMode, SynthesisRequest, TransferOutcome
from .transfer import DeliveryState, deliver
from .cli import main

__all__ = [
    "ConfigError",
    "DeliveryConfig",
    "DeliveryError",
    "DeliveryMode",
    "DeliveryState",
    "FileSystemError",
    "HttpError",
    "NetworkError",
    "NoPlayerError",
    "PlaybackError",
    "SynthesisRequest",
    "TransferOutcome",
    "deliver",
    "main",
]
