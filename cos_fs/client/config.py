# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Configuration Module.

Builds the immutable client configuration from a key-value source, normally
``os.environ``. The source is read once, when a client is constructed.

Lookup order:
    1. ``COS_CONFIG_FILE`` names a JSON file with ``AppID``, ``Region``,
       ``AccessKey``, ``SecretKey`` and optionally ``Endpoint`` and ``Debug``.
    2. Otherwise the individual variables ``COS_APPID``, ``COS_REGION``,
       ``COS_ACCESS_KEY``, ``COS_SECRET_KEY``, ``COS_ENDPOINT_URL`` and ``COS_DEBUG``.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_REGION = "ap-guangzhou"

CONFIG_FILE_ENV = "COS_CONFIG_FILE"
APPID_ENV = "COS_APPID"
REGION_ENV = "COS_REGION"
ACCESS_KEY_ENV = "COS_ACCESS_KEY"
SECRET_KEY_ENV = "COS_SECRET_KEY"
ENDPOINT_ENV = "COS_ENDPOINT_URL"
DEBUG_ENV = "COS_DEBUG"


@dataclass(frozen=True)
class CosConfig:
    """Immutable settings consumed once at client construction."""
    region: str = DEFAULT_REGION
    app_id: Optional[int] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    debug: bool = False

    @property
    def endpoint(self) -> str:
        if self.endpoint_url:
            return self.endpoint_url
        return f"https://cos.{self.region}.myqcloud.com"

    def copy_source_host(self, bucket: str) -> str:
        """Host form COS uses in ``x-cos-copy-source`` headers."""
        return f"{bucket}.cos.{self.region}.myqcloud.com"


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config_file(path: str) -> CosConfig:
    """
    Read a JSON configuration file.

    Args:
        path (str): Path to the file.

    Returns:
        CosConfig: The parsed configuration.

    Raises:
        ConfigurationError: If the file is missing or not a JSON object.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    return CosConfig(
        region=_clean(raw.get("Region")) or DEFAULT_REGION,
        app_id=_as_int(raw.get("AppID")),
        access_key=_clean(raw.get("AccessKey")),
        secret_key=_clean(raw.get("SecretKey")),
        endpoint_url=_clean(raw.get("Endpoint")),
        debug=_as_bool(raw.get("Debug")),
    )


def load_config(environ: Mapping[str, str]) -> CosConfig:
    """
    Build a configuration from an explicit key-value source.

    Args:
        environ (Mapping[str, str]): Source of settings, e.g. ``os.environ``.

    Returns:
        CosConfig: The resolved configuration.
    """
    config_file = _clean(environ.get(CONFIG_FILE_ENV))
    if config_file:
        return load_config_file(config_file)

    return CosConfig(
        region=_clean(environ.get(REGION_ENV)) or DEFAULT_REGION,
        app_id=_as_int(environ.get(APPID_ENV)),
        access_key=_clean(environ.get(ACCESS_KEY_ENV)),
        secret_key=_clean(environ.get(SECRET_KEY_ENV)),
        endpoint_url=_clean(environ.get(ENDPOINT_ENV)),
        # Presence alone turns debug logging on.
        debug=DEBUG_ENV in environ,
    )
