from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import Dict, Optional

from ..domain.models import PageSizeConfig

RESOURCE_KINDS = (
    "Consent",
    "Task",
    "Communication",
    "HealthcareService",
    "Practitioner",
    "Organization",
    "RelatedPerson",
    "Location",
)


def _parse_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """Parse a simple .env file (KEY=VALUE per line, '#' comments, quotes stripped)."""
    env: Dict[str, str] = {}
    if dotenv_path.exists():
        with contextlib.suppress(OSError):
            for raw in dotenv_path.read_text(encoding="utf-8", errors="ignore").splitlines():
                s = raw.strip()
                if not s or s.startswith("#") or "=" not in s:
                    continue
                k, v = s.split("=", 1)
                k = k.strip()
                v = v.strip().strip('"').strip("'")
                if k:
                    env[k] = v
    return env


def _env_get(key: str) -> Optional[str]:
    """Get environment value from process env, falling back to .env in CWD."""
    v = os.getenv(key)
    if v is not None and v.strip():
        return v.strip()
    v2 = _parse_dotenv(Path(".env")).get(key)
    return v2.strip() if v2 is not None and v2.strip() else None


def env_str(name: str, default: str) -> str:
    return _env_get(name) or default


def env_int(name: str, default: int) -> int:
    try:
        return int(env_str(name, str(default)))
    except ValueError:
        return default


def fhir_server_url() -> str:
    return env_str("FHIR_SERVER_URL", "http://localhost:8080/fhir").rstrip("/")


def lookup_workers() -> int:
    """Upper bound on parallel reference lookups while assembling one page."""
    return max(1, env_int("FIS_LOOKUP_WORKERS", 4))


def log_level() -> str:
    return env_str("FIS_LOG_LEVEL", "INFO").upper()


def default_page_size_config() -> PageSizeConfig:
    return PageSizeConfig(
        default_size=env_int("FIS_PAGINATION_DEFAULT_SIZE", 20),
        max_size=env_int("FIS_PAGINATION_MAX_SIZE", 50),
    )


def page_size_config() -> Dict[str, PageSizeConfig]:
    """
    Per resource kind pagination settings.

    Each kind reads FIS_<KIND>_DEFAULT_SIZE / FIS_<KIND>_MAX_SIZE (e.g. FIS_TASK_MAX_SIZE)
    and falls back to the global FIS_PAGINATION_* values.
    """
    fallback = default_page_size_config()
    table: Dict[str, PageSizeConfig] = {}
    for kind in RESOURCE_KINDS:
        prefix = f"FIS_{kind.upper()}"
        table[kind] = PageSizeConfig(
            default_size=env_int(f"{prefix}_DEFAULT_SIZE", fallback.default_size),
            max_size=env_int(f"{prefix}_MAX_SIZE", fallback.max_size),
        )
    return table
