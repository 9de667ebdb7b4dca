"""Configuration loading utilities for the Catalog Admin client."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


LOGGER = logging.getLogger(__name__)


API_URL_ENV_VAR = "CATALOG_ADMIN_API_URL"
DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 30.0

_PERMISSION_SENTINEL = ".catalog_admin_write_check"


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins and the flag reports whether a fallback
    was used. When nothing can be prepared the original ``preferred`` path is
    returned so later steps can report a meaningful error.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


def resolve_api_base_url(
    configured: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the backend base URL, preferring the environment variable."""

    if environ is None:
        environ = os.environ
    candidate = (environ.get(API_URL_ENV_VAR) or "").strip()
    if not candidate:
        candidate = (configured or "").strip()
    if not candidate:
        candidate = DEFAULT_API_URL
    return candidate.rstrip("/")


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for the admin client."""

    storage_root: Path
    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def session_file(self) -> Path:
        """Location of the persisted session token."""

        return self.storage_root / "session.json"

    @classmethod
    def from_mapping(
        cls,
        mapping: Dict[str, Any],
        *,
        base_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AppConfig":
        preferred_storage = (base_path / mapping.get("storage_root", "storage")).resolve()
        storage_fallback = Path.home() / ".catalog_admin" / "storage"
        storage_root, _ = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(storage_fallback,),
        )

        raw_timeout = mapping.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        try:
            request_timeout = float(raw_timeout)
        except (TypeError, ValueError):
            LOGGER.warning(
                "Ignoring invalid request timeout %r; using %s seconds.",
                raw_timeout,
                DEFAULT_REQUEST_TIMEOUT,
            )
            request_timeout = DEFAULT_REQUEST_TIMEOUT
        if request_timeout <= 0:
            request_timeout = DEFAULT_REQUEST_TIMEOUT

        return cls(
            storage_root=storage_root,
            api_base_url=resolve_api_base_url(mapping.get("api_base_url"), environ=environ),
            request_timeout=request_timeout,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the application configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = [
    "API_URL_ENV_VAR",
    "AppConfig",
    "DEFAULT_API_URL",
    "load_config",
    "resolve_api_base_url",
]
