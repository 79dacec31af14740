"""
Engine configuration read from environment variables.
Defaults match the original player (25% main volume, 30% ambient volume).
"""
from dataclasses import dataclass
from typing import Optional
import os
import logging

logger = logging.getLogger(__name__)


DEV_ENVS = ("development", "dev", "test")


def is_dev(env: Optional[str] = None) -> bool:
    """True for development/test deployments (ENV unset counts as development)."""
    if env is None:
        env = os.environ.get("ENV", "development")
    return env.lower() in DEV_ENVS


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r (using %s)", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r (using %s)", name, raw, default)
        return default


@dataclass(frozen=True)
class EngineConfig:
    env: str = "development"
    block_size: int = 512           # live callback block (frames)
    render_block_size: int = 65536  # offline pass block (frames)
    volume: float = 0.25
    ambient_volume: float = 0.3
    fetch_timeout: float = 15.0
    ambient_catalog_path: Optional[str] = None
    ir_seed: Optional[int] = None
    log_level: str = "INFO"

    @property
    def dev(self) -> bool:
        return is_dev(self.env)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        seed_raw = os.environ.get("LOFI_IR_SEED")
        ir_seed = _env_int("LOFI_IR_SEED", 0) if seed_raw else None
        return cls(
            env=os.environ.get("ENV", "development"),
            block_size=max(1, _env_int("LOFI_BLOCK_SIZE", cls.block_size)),
            render_block_size=max(1, _env_int("LOFI_RENDER_BLOCK_SIZE", cls.render_block_size)),
            volume=_env_float("LOFI_VOLUME", cls.volume),
            ambient_volume=_env_float("LOFI_AMBIENT_VOLUME", cls.ambient_volume),
            fetch_timeout=_env_float("LOFI_FETCH_TIMEOUT", cls.fetch_timeout),
            ambient_catalog_path=os.environ.get("LOFI_AMBIENT_CATALOG") or None,
            ir_seed=ir_seed,
            log_level=os.environ.get("LOFI_LOG_LEVEL", cls.log_level).upper(),
        )
