"""
Ambient loop catalog: closed set of ids resolved to remote locations.
Built-in entries are the loops the player has always shipped; a JSON object
({"waves": "https://..."}) named by LOFI_AMBIENT_CATALOG adds or overrides entries.
"""
from typing import Dict, Optional
import json
import logging

logger = logging.getLogger(__name__)

AMBIENT_IDS = ("rain", "vinyl", "cafe", "fireplace", "waves", "wind", "fan", "none")

BUILTIN_AMBIENT_URLS = {
    "rain": "https://assets.mixkit.co/active_storage/sfx/2532/2532.wav",
    "vinyl": "https://assets.mixkit.co/active_storage/sfx/209/209.wav",
    "cafe": "https://assets.mixkit.co/active_storage/sfx/2607/2607.wav",
    "fireplace": "https://assets.mixkit.co/active_storage/sfx/913/913.wav",
}


class AmbientCatalog:
    def __init__(self, urls: Optional[Dict[str, str]] = None):
        merged = dict(BUILTIN_AMBIENT_URLS)
        for key, url in (urls or {}).items():
            if key not in AMBIENT_IDS or key == "none":
                logger.warning("Ambient catalog entry %r is not a known ambient id; skipped", key)
                continue
            merged[key] = url
        self._urls = merged

    @classmethod
    def from_file(cls, path: Optional[str]) -> "AmbientCatalog":
        if not path:
            return cls()
        with open(path, "r") as f:
            return cls(json.load(f))

    def available(self) -> list:
        """Ids that resolve to something (including 'none')."""
        return [k for k in AMBIENT_IDS if k == "none" or k in self._urls]

    def resolve(self, ambient_id: str) -> Optional[str]:
        """URL for an id; None for 'none'. KeyError for unknown or unconfigured ids."""
        if ambient_id == "none":
            return None
        if ambient_id not in AMBIENT_IDS:
            raise KeyError(f"unknown ambient id: {ambient_id!r}")
        if ambient_id not in self._urls:
            raise KeyError(f"ambient id {ambient_id!r} has no configured location")
        return self._urls[ambient_id]
