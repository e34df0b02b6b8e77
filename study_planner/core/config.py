# study_planner/core/config.py
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

APP_TITLE = "Study Planner"
PAGE_ICON = "📚"
FINISH_SOUND_URL = "https://actions.google.com/sounds/v1/alarms/beep_short.ogg"


@dataclass(frozen=True)
class Settings:
    mongo_uri: str = ""
    db_name: str = "Focus_DB"
    store_backend: str = "memory"
    timezone: str = "UTC"
    user_id: str = "demo"
    log_level: str = "INFO"
    log_json: bool = False


def _pick(name: str, secrets: Optional[Mapping[str, Any]], default: str = "") -> str:
    val = None
    if secrets is not None:
        val = secrets.get(name) or secrets.get(name.lower())
    if not val:
        val = os.getenv(name) or os.getenv(name.lower())
    return str(val or default).strip()


def load_settings(secrets: Optional[Mapping[str, Any]] = None) -> Settings:
    """Read settings from `secrets` (e.g. st.secrets) first, then the environment."""
    uri = _pick("MONGO_URI", secrets)
    backend = _pick("STORE_BACKEND", secrets, "mongo" if uri else "memory").lower()
    if backend not in {"mongo", "memory"}:
        backend = "memory"
    return Settings(
        mongo_uri=uri,
        db_name=_pick("DB_NAME", secrets, "Focus_DB"),
        store_backend=backend,
        timezone=_pick("APP_TIMEZONE", secrets, "UTC"),
        user_id=_pick("USER_ID", secrets, "demo"),
        log_level=_pick("LOG_LEVEL", secrets, "INFO").upper(),
        log_json=_pick("LOG_JSON", secrets, "false").lower() in {"1", "true", "yes"},
    )
