"""
Run configuration.

Settings live in a JSON file (quality-preferences.json by default) next to
which the logs/ directory is created. Credentials come from the environment
first and from an optional "credentials" block in the file second, so the
file can be committed without secrets.

Resolution order for the file path:
  1. --config on the command line
  2. RD_AUTOADD_CONFIG env var
  3. ./quality-preferences.json
"""

import json
import os
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple

from rd_autoadd.errors import ConfigError
from rd_autoadd.quality import RESOLUTION_PRIORITY

DEFAULT_CONFIG_FILE = "quality-preferences.json"
MIN_RD_KEY_LENGTH = 20

LIST_TYPES = ("trending", "popular", "watchlist")
MEDIA_TYPES = ("movie", "show")


class QualityPreferences(NamedTuple):
    min_resolution: Optional[str] = None
    min_file_size_gb: Optional[float] = None
    max_file_size_gb: Optional[float] = None
    preferred_resolutions: Tuple[str, ...] = ()
    preferred_keywords: Tuple[str, ...] = ()
    preferred_codecs: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    require_hdr: bool = False
    require_remux: bool = False
    torrentio_sort_by: str = "qualitysize"
    torrentio_quality_filter: str = "other,scr,cam,unknown"


class TraktSource(NamedTuple):
    enabled: bool = False
    lists: Tuple[str, ...] = ("trending",)
    media_types: Tuple[str, ...] = ("movie",)
    max_items_per_list: int = 20
    username: str = ""
    custom_lists: Tuple[str, ...] = ()


class Limits(NamedTuple):
    max_torrents_per_run: int = 10
    max_torrents_per_title: int = 1


class Credentials(NamedTuple):
    real_debrid_api_key: str = ""
    trakt_client_id: str = ""
    trakt_access_token: str = ""


class AutoAddConfig(NamedTuple):
    enabled: bool = True
    dry_run: bool = False
    upgrade_existing: bool = False
    log_level: str = "INFO"
    quality: QualityPreferences = QualityPreferences()
    trakt: TraktSource = TraktSource()
    limits: Limits = Limits()
    credentials: Credentials = Credentials()
    log_dir: str = "logs"


# === Typed accessors ===

def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _int(data: Mapping[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def _optional_gb(data: Mapping[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number of GB, got {value!r}")
    if value < 0:
        raise ConfigError(f"'{key}' cannot be negative")
    # 0 means "no bound", same as leaving the key out
    return float(value) or None


def _str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return value.strip()


def _str_list(data: Mapping[str, Any], key: str, default: Tuple[str, ...] = ()) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings, got {value!r}")
    return tuple(v.strip() for v in value if v.strip())


# === Section parsers ===

def parse_quality_preferences(data: Mapping[str, Any]) -> QualityPreferences:
    min_resolution = _str(data, "minResolution", "") or None
    if min_resolution and min_resolution.lower() not in RESOLUTION_PRIORITY:
        raise ConfigError(
            f"Unknown minResolution '{min_resolution}' "
            f"(expected one of {', '.join(RESOLUTION_PRIORITY)})"
        )
    min_gb = _optional_gb(data, "minFileSizeGB")
    max_gb = _optional_gb(data, "maxFileSizeGB")
    if min_gb and max_gb and min_gb > max_gb:
        raise ConfigError(f"minFileSizeGB ({min_gb}) is larger than maxFileSizeGB ({max_gb})")

    return QualityPreferences(
        min_resolution=min_resolution.lower() if min_resolution else None,
        min_file_size_gb=min_gb,
        max_file_size_gb=max_gb,
        preferred_resolutions=_str_list(data, "preferredResolutions"),
        preferred_keywords=_str_list(data, "preferredKeywords"),
        preferred_codecs=_str_list(data, "preferredCodecs"),
        exclude_keywords=_str_list(data, "excludeKeywords"),
        require_hdr=_bool(data, "requireHDR", False),
        require_remux=_bool(data, "requireRemux", False),
        torrentio_sort_by=_str(data, "torrentioSortBy", "qualitysize") or "qualitysize",
        torrentio_quality_filter=_str(data, "torrentioQualityFilter", "other,scr,cam,unknown"),
    )


def parse_trakt_source(data: Mapping[str, Any]) -> TraktSource:
    lists = _str_list(data, "lists", ("trending",))
    media_types = _str_list(data, "mediaTypes", ("movie",))
    for media_type in media_types:
        if media_type not in MEDIA_TYPES:
            raise ConfigError(f"Unknown Trakt media type '{media_type}'")

    # Older configs mixed "user/slug" entries into "lists"
    custom_lists = list(_str_list(data, "customLists"))
    standard_lists = []
    for name in lists:
        if "/" in name:
            custom_lists.append(name)
        elif name in LIST_TYPES:
            standard_lists.append(name)
        else:
            raise ConfigError(f"Unknown Trakt list type '{name}'")

    for path in custom_lists:
        owner, _, slug = path.partition("/")
        if not owner or not slug:
            raise ConfigError(f"Custom Trakt list must look like 'username/list-slug', got '{path}'")

    return TraktSource(
        enabled=_bool(data, "enabled", False),
        lists=tuple(standard_lists),
        media_types=media_types,
        max_items_per_list=_int(data, "maxItemsPerList", 20, minimum=1),
        username=_str(data, "username", ""),
        custom_lists=tuple(custom_lists),
    )


def parse_limits(data: Mapping[str, Any]) -> Limits:
    return Limits(
        max_torrents_per_run=_int(data, "maxTorrentsPerRun", 10),
        max_torrents_per_title=_int(data, "maxTorrentsPerTitle", 1, minimum=1),
    )


def parse_credentials(data: Mapping[str, Any], environ: Mapping[str, str]) -> Credentials:
    return Credentials(
        real_debrid_api_key=(
            environ.get("REAL_DEBRID_API_KEY") or _str(data, "realDebridApiKey", "")
        ).strip(),
        trakt_client_id=(environ.get("TRAKT_CLIENT_ID") or _str(data, "traktClientId", "")).strip(),
        trakt_access_token=(
            environ.get("TRAKT_ACCESS_TOKEN") or _str(data, "traktAccessToken", "")
        ).strip(),
    )


def parse_config(
    data: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
    log_dir: str = "logs",
) -> AutoAddConfig:
    """Build an AutoAddConfig from already-decoded JSON."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a JSON object")
    environ = os.environ if environ is None else environ
    sources = _section(data, "contentSources")

    return AutoAddConfig(
        enabled=_bool(data, "enabled", True),
        dry_run=_bool(data, "dryRun", False),
        upgrade_existing=_bool(data, "upgradeExisting", False),
        log_level=_str(data, "logLevel", "INFO").upper() or "INFO",
        quality=parse_quality_preferences(_section(data, "qualityPreferences")),
        trakt=parse_trakt_source(_section(sources, "trakt")),
        limits=parse_limits(_section(data, "limits")),
        credentials=parse_credentials(_section(data, "credentials"), environ),
        log_dir=log_dir,
    )


def resolve_config_path(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    return os.path.abspath(
        path or environ.get("RD_AUTOADD_CONFIG") or os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
    )


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AutoAddConfig:
    """Read and validate the configuration file. Raises ConfigError."""
    environ = os.environ if environ is None else environ
    config_path = resolve_config_path(path, environ)
    try:
        with open(config_path, encoding="utf-8") as f:
            data: Dict[str, Any] = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    log_dir = environ.get("RD_AUTOADD_LOG_DIR") or os.path.join(os.path.dirname(config_path), "logs")
    return parse_config(data, environ=environ, log_dir=log_dir)


def require_real_debrid_key(config: AutoAddConfig) -> str:
    key = config.credentials.real_debrid_api_key
    if not key:
        raise ConfigError("REAL_DEBRID_API_KEY environment variable is required")
    if len(key) < MIN_RD_KEY_LENGTH:
        raise ConfigError("REAL_DEBRID_API_KEY appears to be invalid (too short)")
    return key


def mask_secret(secret: str, head: int = 10, tail: int = 4) -> str:
    if len(secret) <= head + tail:
        return "*" * len(secret)
    return f"{secret[:head]}...{secret[-tail:] if tail else ''}"
