from __future__ import annotations

import json
import logging
import os
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

load_dotenv()

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    fetch_timeout: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    debug_extract: bool = False
    debug_dir: str = "debug-artifacts"

    model_config = {
        "extra": "ignore"
    }


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def load_settings() -> Settings:
    raw: Dict[str, Any] = {
        "host": os.getenv("HOST"),
        "port": os.getenv("PORT"),
        "fetch_timeout": os.getenv("FETCH_TIMEOUT"),
        "user_agent": os.getenv("USER_AGENT"),
        "debug_extract": _parse_bool(os.getenv("DEBUG_EXTRACT"), False),
        "debug_dir": os.getenv("DEBUG_DIR"),
    }
    # Unset or blank variables fall back to the model defaults.
    raw = {key: value for key, value in raw.items() if value not in (None, "")}

    try:
        settings = Settings(**raw)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.fetch_timeout <= 0:
        raise RuntimeError("Invalid configuration: FETCH_TIMEOUT must be positive")

    debug_dir = pathlib.Path(settings.debug_dir)
    if settings.debug_extract:
        debug_dir.mkdir(parents=True, exist_ok=True)

    return settings


@dataclass
class ProductMetadata:
    url: str
    title: Optional[str] = None
    price: Optional[str] = None
    images: List[str] = field(default_factory=list)
    store: Optional[str] = None
    store_logo: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        """Wire shape: absent fields are null, ``error`` only appears when set."""
        payload: Dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "price": self.price,
            "images": list(self.images),
            "store": self.store,
            "storeLogo": self.store_logo,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


def configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def dump_debug_payload(debug_dir: str, prefix: str, payload: Dict[str, Any]) -> pathlib.Path:
    path = pathlib.Path(debug_dir) / f"{prefix}.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path
