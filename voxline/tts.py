"""Text-to-speech provider interface and its backend variants.

Neither backend is wired to its vendor API yet; every call raises
``NotImplementedError`` so the HTTP layer can report it as such.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from voxline.errors import ConfigurationError

NOT_IMPLEMENTED = "TTS provider not implemented yet"


class VoiceType(str, Enum):
    MASC = "masc"
    FEM = "fem"


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    language: str


class TTSProvider(ABC):
    name: str = ""

    def __init__(self, api_key: str):
        self.api_key = api_key

    @abstractmethod
    async def speak(self, text: str, voice_id: str) -> bytes:
        """Synthesize *text* with *voice_id* and return the audio bytes."""

    @abstractmethod
    async def get_voices(self) -> list[Voice]:
        """List the PT-BR voices the account can use."""


class ElevenLabsProvider(TTSProvider):
    name = "elevenlabs"

    async def speak(self, text: str, voice_id: str) -> bytes:
        raise NotImplementedError(NOT_IMPLEMENTED)

    async def get_voices(self) -> list[Voice]:
        raise NotImplementedError(NOT_IMPLEMENTED)


class PlayHTProvider(TTSProvider):
    name = "playht"

    async def speak(self, text: str, voice_id: str) -> bytes:
        raise NotImplementedError(NOT_IMPLEMENTED)

    async def get_voices(self) -> list[Voice]:
        raise NotImplementedError(NOT_IMPLEMENTED)


def select_provider(elevenlabs_api_key: str = "", playht_api_key: str = "") -> TTSProvider:
    """Pick the backend whose credential is configured, ElevenLabs first."""
    if elevenlabs_api_key:
        return ElevenLabsProvider(elevenlabs_api_key)
    if playht_api_key:
        return PlayHTProvider(playht_api_key)
    raise ConfigurationError(
        "no TTS credential configured", config_key="ELEVENLABS_API_KEY"
    )
