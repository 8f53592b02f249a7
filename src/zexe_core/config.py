"""User preferences embedded next to a snapshot.

The configuration is a JSON object. Parsing never fails: unknown fields are
ignored and every missing or invalid field falls back to its default.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from warnings import warn

VOLUME_MIN = 0
VOLUME_MAX = 200


@dataclass
class Config:
    fullscreen: bool = True
    filtering: str | None = None
    joystick: str = "Off"
    border: str = "Full"
    cheats_enabled: bool = False
    volume: int = 100

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def _is_bool(v) -> bool:
    return isinstance(v, bool)


def _is_str(v) -> bool:
    return isinstance(v, str)


def _is_volume(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and VOLUME_MIN <= v <= VOLUME_MAX


_FIELDS = {
    "fullscreen": _is_bool,
    "filtering": lambda v: v is None or _is_str(v),
    "joystick": _is_str,
    "border": _is_str,
    "cheats_enabled": _is_bool,
    "volume": _is_volume,
}


def parse_config(text: str | bytes) -> Config:
    cfg = Config()
    try:
        obj = json.loads(text)
    except ValueError as e:
        warn(f"Config is not valid JSON, using defaults: {e}")
        return cfg
    if not isinstance(obj, dict):
        warn("Config is not a JSON object, using defaults")
        return cfg

    for name, check in _FIELDS.items():
        if name not in obj:
            continue
        value = obj[name]
        if check(value):
            setattr(cfg, name, value)
        else:
            warn(f"Config field {name!r} has invalid value {value!r}, using default")
    return cfg


def load_config(path: Path) -> Config:
    return parse_config(Path(path).read_bytes())


def update_volume(path: Path, volume: int) -> bool:
    """Rewrite only the ``volume`` field of an existing config file.

    Returns False, leaving the file alone, when it is missing or not a JSON
    object.
    """
    path = Path(path)
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    if not isinstance(obj, dict):
        return False
    obj["volume"] = int(volume)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
    return True


class _Cycle(str, Enum):
    def next(self):
        members = list(type(self))
        return members[(members.index(self) + 1) % len(members)]


class FilteringMode(str, Enum):
    NEAREST = "Nearest"
    LINEAR = "Linear"
    SCANLINES = "Scanlines"
    EMBEDDED = "Embedded"
    CUSTOM = "Custom"

    def next(self, has_embedded: bool, has_custom: bool) -> "FilteringMode":
        """Cycle order; shader modes are skipped when their shader is missing."""
        if self is FilteringMode.NEAREST:
            return FilteringMode.LINEAR
        if self is FilteringMode.LINEAR:
            return FilteringMode.SCANLINES
        if self is FilteringMode.SCANLINES and has_embedded:
            return FilteringMode.EMBEDDED
        if self in (FilteringMode.SCANLINES, FilteringMode.EMBEDDED) and has_custom:
            return FilteringMode.CUSTOM
        return FilteringMode.NEAREST


class JoystickMode(_Cycle):
    OFF = "Off"
    KEMPSTON = "Kempston"
    SINCLAIR1 = "Sinclair1"  # keys 6-0
    SINCLAIR2 = "Sinclair2"  # keys 1-5
    CURSOR = "Cursor"  # keys 5-8


class BorderMode(_Cycle):
    FULL = "Full"
    MINIMAL = "Minimal"
    NONE = "None"


@dataclass
class Settings:
    fullscreen: bool
    filtering: FilteringMode
    joystick: JoystickMode
    border: BorderMode
    cheats_enabled: bool
    volume: int


def _filtering(name: str | None, has_embedded: bool, has_custom: bool) -> FilteringMode:
    if name is None:
        if has_embedded:
            return FilteringMode.EMBEDDED
        if has_custom:
            return FilteringMode.CUSTOM
        return FilteringMode.NEAREST
    try:
        mode = FilteringMode(name)
    except ValueError:
        return FilteringMode.SCANLINES
    if mode is FilteringMode.EMBEDDED and not has_embedded:
        return FilteringMode.SCANLINES
    if mode is FilteringMode.CUSTOM and not has_custom:
        return FilteringMode.SCANLINES
    return mode


def resolve_settings(
    config: Config | None,
    has_embedded_shader: bool = False,
    has_custom_shader: bool = False,
) -> Settings:
    """Turn configuration names into modes, falling back where a name is unknown."""
    cfg = config or Config()
    try:
        joystick = JoystickMode(cfg.joystick)
    except ValueError:
        joystick = JoystickMode.OFF
    try:
        border = BorderMode(cfg.border)
    except ValueError:
        border = BorderMode.FULL
    return Settings(
        fullscreen=cfg.fullscreen,
        filtering=_filtering(cfg.filtering, has_embedded_shader, has_custom_shader),
        joystick=joystick,
        border=border,
        cheats_enabled=cfg.cheats_enabled,
        volume=cfg.volume,
    )
