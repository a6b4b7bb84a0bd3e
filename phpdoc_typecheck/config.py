"""
phpdoc_typecheck/config.py
══════════════════════════

Scan configuration and its JSON file form.

A configuration file is a single JSON object::

    {
        "check_style": true,
        "check_has_docs": false,
        "fix": false,
        "extensions": [".php"],
        "disabled_codes": ["phpdoc_fun_ret_type_style"]
    }

Every key is optional.  Unknown keys, unknown diagnostic codes and
wrongly typed values are rejected with
:class:`~phpdoc_typecheck.errors.ConfigError`.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .diagnostics import ErrorCode
from .errors import ConfigError

_log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".phpdoc-typecheck.json"


@dataclass(frozen=True)
class ScanConfig:
    """Tuning knobs for one run."""
    check_style: bool = True
    check_has_docs: bool = False
    fix: bool = False
    extensions: Tuple[str, ...] = (".php",)
    disabled_codes: FrozenSet[str] = frozenset()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], path: Optional[str] = None) -> "ScanConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}", path)

        values: Dict[str, Any] = {}
        for key in ("check_style", "check_has_docs", "fix"):
            if key in data:
                if not isinstance(data[key], bool):
                    raise ConfigError(f"{key} must be true or false", path)
                values[key] = data[key]
        for key in ("extensions", "disabled_codes"):
            if key in data:
                items = data[key]
                if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
                    raise ConfigError(f"{key} must be a list of strings", path)
                values[key] = tuple(items) if key == "extensions" else frozenset(items)
        bad_codes = sorted(
            code for code in values.get("disabled_codes", ()) if ErrorCode.from_code(code) is None
        )
        if bad_codes:
            raise ConfigError(f"unknown diagnostic code(s): {', '.join(bad_codes)}", path)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ScanConfig":
        """Copy with every override that is not ``None`` applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)


def load_config(path: Union[str, Path]) -> ScanConfig:
    """Read a configuration file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read configuration: {exc.strerror}", str(path)) from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON: {exc.msg} at line {exc.lineno}", str(path)) from exc
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object", str(path))
    _log.info("Loaded configuration from %s", path)
    return ScanConfig.from_mapping(data, str(path))


def discover_config(explicit: Optional[str], cwd: Optional[Path] = None) -> ScanConfig:
    """The explicit file if given, else the default file if present."""
    if explicit:
        return load_config(explicit)
    candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_NAME
    if candidate.is_file():
        return load_config(candidate)
    return ScanConfig()
