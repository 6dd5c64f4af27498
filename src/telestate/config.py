from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .client import DEFAULT_API_URL
from .errors import ConfigError
from .poller import DEFAULT_ERROR_BACKOFF, DEFAULT_POLL_TIMEOUT

ENV_BOT_TOKEN = "TELESTATE_BOT_TOKEN"

LOCAL_CONFIG_NAME = Path(".telestate") / "telestate.toml"
HOME_CONFIG_PATH = Path.home() / ".telestate" / "telestate.toml"

DEFAULT_REQUEST_TIMEOUT = 120.0


@dataclass(frozen=True, slots=True)
class PollerSettings:
    bot_token: str
    api_url: str = DEFAULT_API_URL
    poll_timeout: int = DEFAULT_POLL_TIMEOUT
    poll_limit: int = 0
    allowed_updates: tuple[str, ...] = ()
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    handler_timeout: float | None = None
    error_backoff: float = DEFAULT_ERROR_BACKOFF
    drain_backlog: bool = False


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_config(path: str | Path | None = None) -> tuple[dict, Path]:
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate

    raise ConfigError("Missing telestate config.")


def get_bot_token(config: dict, config_path: Path) -> str:
    """Get bot token from environment variable or config file.

    Environment variable TELESTATE_BOT_TOKEN takes precedence over config file.
    """
    env_token = os.environ.get(ENV_BOT_TOKEN)
    if env_token and env_token.strip():
        return env_token.strip()

    try:
        token = config["bot_token"]
    except KeyError:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {config_path}."
        ) from None

    if not isinstance(token, str) or not token.strip():
        raise ConfigError(
            f"Invalid `bot_token` in {config_path}; expected a non-empty string."
        )
    return token.strip()


def _get_int(config: dict, key: str, default: int, config_path: Path) -> int:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(
            f"Invalid `{key}` in {config_path}; expected a non-negative integer."
        )
    return value


def _get_float(
    config: dict, key: str, default: float | None, config_path: Path
) -> Any:
    value = config.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"Invalid `{key}` in {config_path}; expected a non-negative number."
        )
    return float(value)


def parse_settings(config: dict, config_path: Path) -> PollerSettings:
    api_url = config.get("api_url", DEFAULT_API_URL)
    if not isinstance(api_url, str) or not api_url.strip():
        raise ConfigError(
            f"Invalid `api_url` in {config_path}; expected a non-empty string."
        )

    allowed_updates = config.get("allowed_updates", [])
    if not isinstance(allowed_updates, list) or not all(
        isinstance(item, str) and item for item in allowed_updates
    ):
        raise ConfigError(
            f"Invalid `allowed_updates` in {config_path}; "
            "expected a list of non-empty strings."
        )

    drain_backlog = config.get("drain_backlog", False)
    if not isinstance(drain_backlog, bool):
        raise ConfigError(
            f"Invalid `drain_backlog` in {config_path}; expected true or false."
        )

    poll_timeout = _get_int(config, "poll_timeout", DEFAULT_POLL_TIMEOUT, config_path)
    request_timeout = _get_float(
        config, "request_timeout", DEFAULT_REQUEST_TIMEOUT, config_path
    )
    if request_timeout <= poll_timeout:
        raise ConfigError(
            f"Invalid `request_timeout` in {config_path}; "
            f"must be greater than `poll_timeout` ({poll_timeout})."
        )

    return PollerSettings(
        bot_token=get_bot_token(config, config_path),
        api_url=api_url.strip(),
        poll_timeout=poll_timeout,
        poll_limit=_get_int(config, "poll_limit", 0, config_path),
        allowed_updates=tuple(allowed_updates),
        request_timeout=request_timeout,
        handler_timeout=_get_float(config, "handler_timeout", None, config_path),
        error_backoff=_get_float(
            config, "error_backoff", DEFAULT_ERROR_BACKOFF, config_path
        ),
        drain_backlog=drain_backlog,
    )


def load_settings(path: str | Path | None = None) -> tuple[PollerSettings, Path]:
    config, cfg_path = load_config(path)
    return parse_settings(config, cfg_path), cfg_path
