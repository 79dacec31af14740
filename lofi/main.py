from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import base64
import binascii
import logging

import uvicorn

from lofi.core.config import EngineConfig
from lofi.core.errors import DecodeError, InvalidSettingsError
from lofi.core.io import AudioIO
from lofi.params.ambient import AmbientCatalog
from lofi.params.mapper import map_settings
from lofi.params.settings import resolve_settings
from lofi.render.offline import OfflineRenderer

config = EngineConfig.from_env()

# Configure Logging
logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
logger = logging.getLogger("lofi")

app = FastAPI(
    title="Lofi Engine",
    version="1.0.0",
    description="Lofi effect chain: slowdown, filtering, compression, reverb, bit-crush"
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

catalog = AmbientCatalog.from_file(config.ambient_catalog_path)
renderer = OfflineRenderer(config.render_block_size)


def _settings_or_422(raw):
    try:
        return resolve_settings(raw)
    except InvalidSettingsError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _decode_b64(field: str, value) -> bytes:
    if not isinstance(value, str) or not value:
        raise HTTPException(status_code=400, detail=f"'{field}' must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail=f"'{field}' is not valid base64")


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "lofi-engine"}


@app.get("/ambient")
async def list_ambient():
    """Ambient ids that can be requested in /render."""
    return {"ambient": catalog.available()}


@app.post("/coefficients")
async def coefficients(settings: dict):
    """Mapped DSP values for a settings object (missing keys take defaults)."""
    resolved = _settings_or_422(settings)
    return {
        "resolved_settings": resolved.to_dict(),
        "coefficients": map_settings(resolved).to_dict(),
    }


@app.post("/render")
async def render(body: dict):
    """
    Renders a lofi version of an uploaded track.
    Body: { audio: base64 file, settings: {...}, ambient: id, ambient_volume: 0..1, seed: int }
    Returns JSON with base64-encoded WAV and resolved_settings.
    """
    settings = _settings_or_422(body.get("settings") or {})
    try:
        asset = AudioIO.decode(_decode_b64("audio", body.get("audio")))
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ambient = None
    ambient_id = body.get("ambient") or "none"
    try:
        url = catalog.resolve(ambient_id)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if url is not None:
        try:
            data = await asyncio.to_thread(AudioIO.fetch, url, config.fetch_timeout)
            ambient = AudioIO.decode(data)
        except Exception as e:
            logger.warning("Ambient '%s' unavailable, rendering without it: %s", ambient_id, e)

    try:
        ambient_volume = float(body.get("ambient_volume", config.ambient_volume))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="'ambient_volume' must be a number")
    seed = body.get("seed")

    wav_bytes = await asyncio.to_thread(
        renderer.render_wav,
        asset,
        settings,
        ambient=ambient,
        ambient_gain=min(max(ambient_volume, 0.0), 1.0),
        seed=seed if isinstance(seed, int) else None,
    )
    if wav_bytes is None:
        raise HTTPException(status_code=500, detail="render failed")

    return {
        "audio": base64.b64encode(wav_bytes).decode("utf-8"),
        "resolved_settings": settings.to_dict(),
        "ambient": ambient_id if ambient is not None else "none",
    }


if __name__ == "__main__":
    uvicorn.run("lofi.main:app", host="0.0.0.0", port=8000, reload=True)
