"""
Model module for deepgram_tts package.

Contains the model catalog, the request/config values passed through a
delivery, and the outcome handed back to the caller.
"""

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlencode

from .errors import ConfigError, DeliveryError

# ----------------------------
# Constants and catalogs
# ----------------------------
DEFAULT_MODEL = "aura-2-thalia-en"
DEFAULT_OUTPUT = "output.mp3"
DEFAULT_SPEAK_URL = "https://api.deepgram.com/v1/speak"

KNOWN_MODELS = [
    ("aura-2-thalia-en", "female"),
    ("aura-2-luna-en", "female"),
    ("aura-2-stella-en", "female"),
    ("aura-2-athena-en", "female"),
    ("aura-2-hera-en", "female"),
    ("aura-2-orion-en", "male"),
    ("aura-2-arcas-en", "male"),
    ("aura-2-perseus-en", "male"),
    ("aura-2-angus-en", "male"),
    ("aura-2-orpheus-en", "male"),
]


class DeliveryMode(enum.Enum):
    DOWNLOAD = "download"
    STREAM = "stream"


# ----------------------------
# Request / config values
# ----------------------------
@dataclass(frozen=True)
class SynthesisRequest:
    """
    One text submitted to the speak endpoint.

    Args:
        text: Text to synthesize (must not be blank)
        model: Aura model identifier
        api_key: Deepgram credential, sent as ``Authorization: Token <key>``
    """

    text: str
    model: str = DEFAULT_MODEL
    api_key: str = field(default="", repr=False)

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ConfigError("No text provided")
        if not self.api_key:
            raise ConfigError("DEEPGRAM_API_KEY environment variable or --api-key option is required")
        if not self.model:
            raise ConfigError("Model must not be empty")

    @property
    def url(self) -> str:
        base = os.getenv("DEEPGRAM_SPEAK_URL", DEFAULT_SPEAK_URL)
        return f"{base}?{urlencode({'model': self.model})}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": "application/json",
        }

    @property
    def payload(self) -> Dict[str, str]:
        return {"text": self.text}


@dataclass(frozen=True)
class DeliveryConfig:
    """
    How the synthesized audio reaches the speakers.

    Args:
        mode: DOWNLOAD plays a finished file, STREAM pipes bytes as they arrive
        output_path: File the audio is written to; None when no file is wanted
        retain_file: Keep output_path after playback instead of deleting it
        verbose: Report progress through logging
        timeout: Network timeout in seconds, None to wait indefinitely
    """

    mode: DeliveryMode = DeliveryMode.DOWNLOAD
    output_path: Optional[Path] = Path(DEFAULT_OUTPUT)
    retain_file: bool = False
    verbose: bool = False
    timeout: Optional[float] = None


@dataclass(frozen=True)
class TransferOutcome:
    """Result of one synthesis + delivery cycle."""

    error: Optional[DeliveryError] = None
    bytes_received: int = 0
    output_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str:
        return "success" if self.error is None else self.error.kind
