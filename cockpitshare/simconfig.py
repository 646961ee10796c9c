"""Persistent user configuration stored as JSON."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any


class ConfigLoadError(Exception):
    """The configuration could not be read or written."""


_BOOL_FIELDS = {
    "check_for_betas",
    "ui_dark_theme",
    "streamer_mode",
    "instructor_mode",
    "sound_muted",
}
_STR_FIELDS = {"ip", "name"}


def _check_field(name: str, value: Any) -> None:
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigLoadError(f"invalid type for `{name}`: expected a boolean")
    elif name in _STR_FIELDS:
        if not isinstance(value, str):
            raise ConfigLoadError(f"invalid type for `{name}`: expected a string")
    else:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigLoadError(f"invalid type for `{name}`: expected an integer")
        upper = 0xFFFF if name == "port" else 0xFFFF_FFFF_FFFF_FFFF
        if not 0 <= value <= upper:
            raise ConfigLoadError(f"invalid value for `{name}`: {value} out of range")


@dataclass
class Config:
    """Application settings."""

    conn_timeout: int = 5
    check_for_betas: bool = False
    port: int = 25071
    ip: str = ""
    name: str = ""
    ui_dark_theme: bool = True
    streamer_mode: bool = False
    instructor_mode: bool = False
    sound_muted: bool = False

    def write_to_file(self, path: str | Path) -> None:
        """Write the configuration as pretty printed JSON."""
        text = json.dumps(asdict(self), indent=2)
        try:
            Path(path).write_text(text, encoding="utf-8")
        except OSError as error:
            raise ConfigLoadError(str(error)) from error

    @classmethod
    def read_from_file(cls, path: str | Path) -> Config:
        """Read a configuration; every field must be present."""
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
        except OSError as error:
            raise ConfigLoadError(str(error)) from error
        except ValueError as error:
            raise ConfigLoadError(str(error)) from error
        if not isinstance(data, dict):
            raise ConfigLoadError("invalid type: expected a JSON object")
        values = {}
        for field in fields(cls):
            if field.name not in data:
                raise ConfigLoadError(f"missing field `{field.name}`")
            _check_field(field.name, data[field.name])
            values[field.name] = data[field.name]
        return cls(**values)

    def to_json(self) -> str:
        """Compact JSON with keys in sorted order."""
        return json.dumps(asdict(self), sort_keys=True, separators=(",", ":"))