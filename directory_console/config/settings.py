"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from directory_console.core.directory.client import DEFAULT_BASE_URL, REQUEST_TIMEOUT
from directory_console.core.mutations import MergePolicy
from directory_console.core.paginator import PAGE_SIZE

# Credentials published by reqres.in for its demo login
DEMO_EMAIL = "eve.holt@reqres.in"
DEMO_PASSWORD = "cityslicka"

logger = logging.getLogger(__name__)


API_KEY_SECRET = "directory_api_key"


def _load_api_key() -> str | None:
    """Read the API key from /run/secrets, falling back to DIRECTORY_API_KEY."""
    secret_file = Path("/run/secrets") / API_KEY_SECRET
    if secret_file.is_file():
        value = secret_file.read_text().strip()
        if value:
            logger.debug("Loaded %s from /run/secrets", API_KEY_SECRET)
            return value
    return os.getenv("DIRECTORY_API_KEY") or None


@dataclass
class ConsoleConfig:
    """Application configuration container."""
    demo_mode: bool

    # Directory API
    api_base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    request_timeout: float = REQUEST_TIMEOUT

    # Operator credentials
    email: str = ""
    password: str = ""

    # Views
    page_size: int = PAGE_SIZE
    merge_policy: MergePolicy = MergePolicy.CLIENT

    log_level: str = "INFO"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or fall back to the demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required outside demo mode.")


def _positive_int(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{var_name} must be positive, got {value}")
    return value


def _positive_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{var_name} must be positive, got {value}")
    return value


def load_settings(require_credentials: bool = True) -> ConsoleConfig:
    """Load console settings from environment and /run/secrets.

    Args:
        require_credentials: Fail when no login credentials are configured
            (ignored in demo mode, which falls back to the reqres demo user)

    Raises:
        ValueError: On malformed values
        RuntimeError: On missing credentials outside demo mode
    """
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    policy_raw = os.environ.get("DIRECTORY_MERGE_POLICY", MergePolicy.CLIENT.value).strip().lower()
    try:
        merge_policy = MergePolicy(policy_raw)
    except ValueError:
        allowed = ", ".join(p.value for p in MergePolicy)
        raise ValueError(f"DIRECTORY_MERGE_POLICY must be one of: {allowed}") from None

    return ConsoleConfig(
        demo_mode=demo_mode,
        api_base_url=os.environ.get("DIRECTORY_API_URL", DEFAULT_BASE_URL).rstrip("/"),
        api_key=_load_api_key(),
        request_timeout=_positive_float("DIRECTORY_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        email=_get_or_generate("DIRECTORY_EMAIL", DEMO_EMAIL, require_credentials, demo_mode),
        password=_get_or_generate("DIRECTORY_PASSWORD", DEMO_PASSWORD, require_credentials, demo_mode),
        page_size=_positive_int("DIRECTORY_PAGE_SIZE", PAGE_SIZE),
        merge_policy=merge_policy,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
