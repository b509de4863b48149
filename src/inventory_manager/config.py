import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import resolve_db_path

log = get_logger("config")

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 10000

# Keys at or below this length are treated as unset (placeholder values).
MIN_API_KEY_LENGTH = 30
PLACEHOLDER_API_KEYS = frozenset({"your_real_openai_api_key_here", "sk-your-key-here"})


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Running the server from a subdirectory (e.g. `src/`) still finds the
    repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest `.env` without mutating os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v.strip() for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Dict[str, str], key: str) -> Optional[str]:
    v = os.environ.get(key)
    if v is not None and v.strip():
        return v.strip()
    v = env.get(key) or env.get(key.lower())
    return v.strip() if v else None


def _usable_api_key(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if value in PLACEHOLDER_API_KEYS:
        log.warning("OPENAI_API_KEY is still the placeholder value; AI features disabled")
        return None
    if len(value) <= MIN_API_KEY_LENGTH:
        log.warning("OPENAI_API_KEY looks truncated (%d chars); AI features disabled", len(value))
        return None
    return value


def load_openai(dotenv_dir: str) -> Optional[str]:
    """Return a usable OpenAI API key from env or .env, else None."""
    return _usable_api_key(_lookup(_read_dotenv(dotenv_dir), "OPENAI_API_KEY"))


def _parse_port(value: Optional[str]) -> int:
    if not value:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        log.warning(f"Ignoring non-numeric PORT={value!r}; using {DEFAULT_PORT}")
        return DEFAULT_PORT


def _parse_origins(value: Optional[str]) -> List[str]:
    if not value:
        return ["*"]
    origins = [o.strip() for o in value.split(",") if o.strip()]
    return origins or ["*"]


@dataclass
class Settings:
    db_path: str
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    allow_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def ai_enabled(self) -> bool:
        return self.openai_api_key is not None


def load_settings(dotenv_dir: Optional[str] = None) -> Settings:
    """Collect runtime settings; process environment wins over `.env`."""
    base = dotenv_dir or os.getcwd()
    env = _read_dotenv(base)
    api_key = _usable_api_key(_lookup(env, "OPENAI_API_KEY"))
    if api_key is None:
        log.info("OpenAI API key not configured; AI features will be disabled")
    settings = Settings(
        db_path=resolve_db_path(_lookup(env, "INVENTORY_DB_PATH"), base),
        openai_api_key=api_key,
        openai_model=_lookup(env, "OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        host=_lookup(env, "HOST") or DEFAULT_HOST,
        port=_parse_port(_lookup(env, "PORT")),
        allow_origins=_parse_origins(_lookup(env, "CORS_ORIGINS")),
    )
    log.debug(f"Settings: db_path={settings.db_path} model={settings.openai_model} ai_enabled={settings.ai_enabled}")
    return settings
