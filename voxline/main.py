"""FastAPI application exposing validation, favorites, settings and voices."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from voxline import config
from voxline.errors import ConfigurationError
from voxline.store import DataStore
from voxline.tts import TTSProvider, VoiceType, select_provider
from voxline.utils import (
    format_phone_number,
    is_dtmf_sequence,
    normalize_msisdn,
    phone_number_info,
    validate_e164,
)

FAVORITES_KEY = "favorites.json"
SETTINGS_KEY = "settings.json"


app = FastAPI()
STORE = DataStore(config.DATA_DIR)


@app.on_event("startup")
def _startup() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    logging.info("data directory: %s", STORE.base_dir)


def get_store() -> DataStore:
    return STORE


def _as_favorites(value: Any) -> list[dict]:
    if isinstance(value, list) and all(isinstance(f, dict) for f in value):
        return value
    logging.warning("ignoring %s: expected a list of objects, got %s", FAVORITES_KEY, type(value).__name__)
    return []


def _as_settings(value: Any) -> dict[str, str]:
    if isinstance(value, dict):
        return {key: str(item) for key, item in value.items()}
    logging.warning("ignoring %s: expected an object, got %s", SETTINGS_KEY, type(value).__name__)
    return {}


def get_tts_provider() -> TTSProvider:
    try:
        return select_provider(config.ELEVENLABS_API_KEY, config.PLAYHT_API_KEY)
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/health")
def api_health(store: DataStore = Depends(get_store)) -> dict[str, Any]:
    credentials = {
        "ELEVENLABS_API_KEY": bool(config.ELEVENLABS_API_KEY),
        "PLAYHT_API_KEY": bool(config.PLAYHT_API_KEY),
    }
    try:
        provider: str | None = select_provider(
            config.ELEVENLABS_API_KEY, config.PLAYHT_API_KEY
        ).name
    except ConfigurationError:
        provider = None
    return {
        "status": "healthy" if provider else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "tts_provider": provider,
        "credentials": credentials,
        "data_dir": str(store.base_dir),
    }


class PhoneIn(BaseModel):
    phone_number: str


@app.post("/api/phone/validate")
def api_validate_phone(data: PhoneIn) -> dict[str, Any]:
    formatted = format_phone_number(data.phone_number)
    return {
        "input": data.phone_number,
        "formatted": formatted,
        "valid": validate_e164(formatted),
        "info": phone_number_info(formatted).to_dict(),
    }


class DigitsIn(BaseModel):
    digits: str


@app.post("/api/dtmf/validate")
def api_validate_dtmf(data: DigitsIn) -> dict[str, Any]:
    return {"digits": data.digits, "valid": is_dtmf_sequence(data.digits)}


class FavoriteIn(BaseModel):
    name: str
    phone_e164: str
    voice_type: VoiceType


@app.get("/api/favorites")
async def list_favorites(store: DataStore = Depends(get_store)) -> list[dict]:
    return _as_favorites(await store.read(FAVORITES_KEY, []))


@app.post("/api/favorites")
async def add_favorite(
    favorite: FavoriteIn, store: DataStore = Depends(get_store)
) -> dict:
    try:
        msisdn = normalize_msisdn(favorite.phone_e164)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    entry = {
        "name": favorite.name,
        "phone_e164": msisdn,
        "voice_type": favorite.voice_type.value,
        "created_at": datetime.utcnow().isoformat(),
    }

    def _append(current: Any) -> list[dict]:
        favorites = _as_favorites(current)
        entry["id"] = max((f["id"] for f in favorites if isinstance(f.get("id"), int)), default=0) + 1
        return favorites + [entry]

    await store.update(FAVORITES_KEY, [], _append)
    logging.info("favorite added: %s (%s) voice %s", entry["name"], msisdn, entry["voice_type"])
    return entry


@app.delete("/api/favorites/{favorite_id}")
async def delete_favorite(
    favorite_id: int, store: DataStore = Depends(get_store)
) -> dict[str, str]:
    removed: list[dict] = []

    def _remove(current: Any) -> list[dict]:
        favorites = _as_favorites(current)
        kept = [f for f in favorites if f.get("id") != favorite_id]
        removed.extend(f for f in favorites if f.get("id") == favorite_id)
        return kept

    await store.update(FAVORITES_KEY, [], _remove)
    if not removed:
        raise HTTPException(status_code=404, detail="not found")
    logging.info("favorite removed: %d", favorite_id)
    return {"status": "deleted"}


@app.get("/api/settings")
async def get_settings(store: DataStore = Depends(get_store)) -> dict[str, str]:
    return _as_settings(await store.read(SETTINGS_KEY, {}))


@app.post("/api/settings")
async def update_settings(
    settings: dict[str, Any], store: DataStore = Depends(get_store)
) -> dict[str, str]:
    def _merge(current: Any) -> dict[str, str]:
        merged = _as_settings(current)
        merged.update({key: str(value) for key, value in settings.items()})
        return merged

    merged = await store.update(SETTINGS_KEY, {}, _merge)
    logging.info("settings updated: %s", sorted(settings))
    return merged


class VoiceOut(BaseModel):
    id: str
    name: str
    language: str


class VoiceTestIn(BaseModel):
    text: str
    voice_id: str


@app.get("/api/voices", response_model=list[VoiceOut])
async def list_voices(provider: TTSProvider = Depends(get_tts_provider)):
    try:
        voices = await provider.get_voices()
    except NotImplementedError as exc:
        raise HTTPException(status_code=501, detail=str(exc)) from exc
    return [VoiceOut(id=v.id, name=v.name, language=v.language) for v in voices]


@app.post("/api/voices/test")
async def api_test_voice(
    data: VoiceTestIn, provider: TTSProvider = Depends(get_tts_provider)
) -> dict[str, Any]:
    try:
        audio = await provider.speak(data.text, data.voice_id)
    except NotImplementedError as exc:
        raise HTTPException(status_code=501, detail=str(exc)) from exc
    return {"provider": provider.name, "voice_id": data.voice_id, "bytes": len(audio)}
