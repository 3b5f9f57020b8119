import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = BACKEND_DIR / "data"
DEFAULT_FRONTEND_DIR = BACKEND_DIR.parent / "frontend" / "build"
DEFAULT_PORT = 3001
DEFAULT_HOST = "0.0.0.0"

GRADE_CHOICES = ("大一", "大二", "大三", "大四")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
        if 0 < parsed < 65536:
            return parsed
    except ValueError:
        pass
    logger.warning("Invalid %s value: %s", name, raw)
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Invalid %s value: %s", name, raw)
    return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    data_dir: Path = DEFAULT_DATA_DIR
    frontend_dir: Path = DEFAULT_FRONTEND_DIR
    enforce_grades: bool = False
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"
    grade_choices: tuple[str, ...] = field(default=GRADE_CHOICES)

    @property
    def allowed_grades(self) -> tuple[str, ...] | None:
        return self.grade_choices if self.enforce_grades else None


def load_settings() -> Settings:
    """Build settings from the process environment."""
    data_dir = os.environ.get("INTAKE_DATA_DIR")
    frontend_dir = os.environ.get("INTAKE_FRONTEND_DIR")
    return Settings(
        host=os.environ.get("HOST", DEFAULT_HOST).strip() or DEFAULT_HOST,
        port=_env_int("PORT", DEFAULT_PORT),
        data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
        frontend_dir=Path(frontend_dir).expanduser() if frontend_dir else DEFAULT_FRONTEND_DIR,
        enforce_grades=_env_bool("ENFORCE_GRADES", False),
        cors_origins=_env_list("CORS_ORIGINS", ("*",)),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
