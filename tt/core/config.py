import json
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from tt.common.logger import log
from tt.common.setup import PATHS


#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"
SESSION_PATH = PATHS.current / "session.json"

MINUTE_MS = 60 * 1000

# Default values for every recognized setting.
_SETTINGS_DEFAULTS = {
    "day_boundary_hour": 3,
    "auto_baseline": "08:30",
    "fallback_category": "Entertainment",
    "auto_category": "Entertainment (Auto)",
    "capped_limits_minutes": {
        "shower": 45,
        "python": 30,
    },
    "tick_interval_ms": 1000,
}

# Immutable view of the settings for the lifetime of the process.
@dataclass(frozen=True)
class Settings:
    day_boundary_hour: int = 3
    auto_baseline_hour: int = 8
    auto_baseline_minute: int = 30
    fallback_category: str = "Entertainment"
    auto_category: str = "Entertainment (Auto)"
    capped_limits_ms: MappingProxyType = field(default_factory=lambda: MappingProxyType({
        "shower": 45 * MINUTE_MS,
        "python": 30 * MINUTE_MS,
    }))
    tick_interval_ms: int = 1000

# Parses "HH:MM" into an (hour, minute) tuple, or None if it isn't a valid clock time.
def _parse_clock(value):
    if not isinstance(value, str):
        return None
    try:
        hour, minute = map(int, value.strip().split(":"))
    except ValueError:
        return None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return hour, minute

# Lower-cases and trims the configured capped categories, dropping anything that isn't a finite positive number of
# minutes. Returns the limits along with whether any entry was dropped.
def _normalize_limits(raw):
    limits = {}
    dropped = False
    for key, minutes in raw.items():
        if not isinstance(key, str) or not key.strip():
            dropped = True
            continue
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or not math.isfinite(minutes) or minutes <= 0:
            dropped = True
            continue
        limits[key.strip().lower()] = int(minutes * MINUTE_MS)
    return limits, dropped

#endregion === Helpers and Paths ===

#region === Settings ===

# Builds a Settings object from a raw settings dict, defaulting anything missing or malformed. Returns the settings
# along with the set of keys that had to be defaulted.
def build_settings(raw):
    defaulted_values = set()
    merged = dict(_SETTINGS_DEFAULTS)
    if not isinstance(raw, dict):
        defaulted_values.add("settings")
        raw = {}

    for key, default in _SETTINGS_DEFAULTS.items():
        if key not in raw:
            continue
        value = raw[key]
        if type(value) is not type(default):
            defaulted_values.add(key)
            continue
        merged[key] = value

    if not 0 <= merged["day_boundary_hour"] < 24:
        defaulted_values.add("day_boundary_hour")
        merged["day_boundary_hour"] = _SETTINGS_DEFAULTS["day_boundary_hour"]

    baseline = _parse_clock(merged["auto_baseline"])
    if baseline is None:
        defaulted_values.add("auto_baseline")
        baseline = _parse_clock(_SETTINGS_DEFAULTS["auto_baseline"])

    for key in ("fallback_category", "auto_category"):
        if not merged[key].strip():
            defaulted_values.add(key)
            merged[key] = _SETTINGS_DEFAULTS[key]

    if merged["tick_interval_ms"] <= 0:
        defaulted_values.add("tick_interval_ms")
        merged["tick_interval_ms"] = _SETTINGS_DEFAULTS["tick_interval_ms"]

    limits, dropped = _normalize_limits(merged["capped_limits_minutes"])
    if dropped:
        defaulted_values.add("capped_limits_minutes")

    settings = Settings(
        day_boundary_hour=merged["day_boundary_hour"],
        auto_baseline_hour=baseline[0],
        auto_baseline_minute=baseline[1],
        fallback_category=merged["fallback_category"].strip(),
        auto_category=merged["auto_category"].strip(),
        capped_limits_ms=MappingProxyType(limits),
        tick_interval_ms=merged["tick_interval_ms"],
    )
    return settings, defaulted_values

# Loads settings.json, falling back to defaults when the file is missing or unreadable.
def load_settings(path=None):
    path = path or SETTINGS_PATH
    if not path.exists():
        log.info(f"No settings file found at '{path}', using default settings.")
        return build_settings({})[0]
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        log.warning(f"Ran into an error while reading '{path}', falling back to default settings.", exc_info=True)
        return build_settings({})[0]

    settings, defaulted_values = build_settings(raw)
    if defaulted_values:
        log.warning(f"Loaded settings from '{path}', but with malformed values that were defaulted: {', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded settings from '{path}'.")
    return settings

# Writes the default settings to disk so the user has something to edit.
def write_default_settings(path=None):
    path = path or SETTINGS_PATH
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_SETTINGS_DEFAULTS, f, indent=2)
    log.info(f"Wrote default settings to '{path}'")
    return path

#endregion === Settings ===

#region === Timer Session ===

# Loads the persisted timer session as a raw dict. Anything missing or unreadable means there's no session.
def load_session(path=None):
    path = path or SESSION_PATH
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        log.warning(f"Ran into an error while reading the timer session at '{path}', treating it as absent.", exc_info=True)
        return None
    if not isinstance(raw, dict):
        log.warning(f"Timer session at '{path}' isn't an object, treating it as absent.")
        return None
    return raw

def save_session(snapshot, path=None):
    path = path or SESSION_PATH
    tmp_path = path.with_suffix(".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2)
    tmp_path.replace(path)
    log.debug(f"Saved timer session to '{path}'")

def clear_session(path=None):
    path = path or SESSION_PATH
    path.unlink(missing_ok=True)
    log.debug(f"Cleared timer session at '{path}'")

#endregion === Timer Session ===
