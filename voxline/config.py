"""Environment-driven settings for the voice-call backend."""

from __future__ import annotations

import os

DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "BR")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")
PLAYHT_API_KEY = os.getenv("PLAYHT_API_KEY", "")
