"""
User configuration file support.

Reads/writes ``~/.hifi-jitter/config.json``.  Values there become the CLI
defaults; ``--save-defaults`` writes the current measurement flags back.

Supported keys::

    sample_count = 50        # measured probes per service
    warmup_count = 5         # discarded probes before measuring
    interval_ms = 100        # delay between probes
    timeout_ms = 5000        # per-probe deadline
    services = []            # default service ids (empty = whole catalog)
    log_level = "WARNING"
    log_file = ""            # rotating debug log (empty = none)

Entries of the wrong type are dropped with a warning and the default is
used instead; unknown keys are ignored.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

from .constants import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_SAMPLE_COUNT,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_WARMUP_COUNT,
)

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".hifi-jitter")
_CONFIG_FILE = "config.json"


def config_path() -> str:
    """Return the config file path."""
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults and accepted types
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "sample_count": DEFAULT_SAMPLE_COUNT,
    "warmup_count": DEFAULT_WARMUP_COUNT,
    "interval_ms": DEFAULT_INTERVAL_MS,
    "timeout_ms": DEFAULT_TIMEOUT_MS,
    "services": [],
    "log_level": "WARNING",
    "log_file": "",
}

_TYPES: Dict[str, Tuple[type, ...]] = {
    "sample_count": (int,),
    "warmup_count": (int,),
    "interval_ms": (int, float),
    "timeout_ms": (int, float),
    "services": (list,),
    "log_level": (str,),
    "log_file": (str,),
}


def _accepts(key: str, value: Any) -> bool:
    # bool is an int subclass; "sample_count": true is a typo, not a count
    if isinstance(value, bool) or not isinstance(value, _TYPES[key]):
        return False
    if key == "services":
        return all(isinstance(item, str) for item in value)
    return True


def _merge(config: Dict[str, Any], user: Mapping[str, Any], source: str) -> None:
    for key, value in user.items():
        if key not in _TYPES:
            logger.debug("%s: ignoring unknown key %r", source, key)
        elif _accepts(key, value):
            config[key] = value
        else:
            logger.warning(
                "%s: ignoring %s=%r (expected %s)",
                source, key, value, " or ".join(t.__name__ for t in _TYPES[key]),
            )


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Defaults overlaid with the well-typed entries of the config file."""
    path = config_path()
    config = copy.deepcopy(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("%s: unreadable, using defaults (%s)", path, exc)
        return config

    if isinstance(user, dict):
        _merge(config, user, path)
    else:
        logger.warning("%s: expected a JSON object, using defaults", path)
    return config


def save_config(updates: Mapping[str, Any]) -> str:
    """
    Merge *updates* into the stored config and write it.  Returns the path.

    Raises ``ValueError`` for unknown keys or values of the wrong type, so a
    bad value never reaches the file.
    """
    for key, value in updates.items():
        if key not in _TYPES:
            raise ValueError(f"Unknown config key: {key}")
        if not _accepts(key, value):
            raise ValueError(f"Invalid value for {key}: {value!r}")

    config = load_config()
    config.update(updates)

    path = config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)
    return path
