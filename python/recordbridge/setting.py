"""
Settings that parameterize converters.

Converters need no configuration; the defaults are what a converter uses
when none is given. Settings can be built from an opaque key/value mapping
(as handed over by a host job configuration) or from environment variables.
"""

from __future__ import annotations

import dataclasses
import os
from typing import Any, Literal, Mapping

UnionTieBreak = Literal["error", "first"]

_UNION_TIE_BREAKS: tuple[str, ...] = ("error", "first")

CONF_UNION_TIE_BREAK = "recordbridge.union.tie_break"
CONF_FIXED_VALIDATE_LENGTH = "recordbridge.fixed.validate_length"

_ENV_VARS = {
    CONF_UNION_TIE_BREAK: "RECORDBRIDGE_UNION_TIE_BREAK",
    CONF_FIXED_VALIDATE_LENGTH: "RECORDBRIDGE_FIXED_VALIDATE_LENGTH",
}

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid boolean for `{key}`: {value!r}")


@dataclasses.dataclass(frozen=True)
class ConverterSettings:
    """Settings for value conversion."""

    # What to do when a value matches several composite union branches and
    # carries no branch name: fail, or take the first matching branch.
    union_tie_break: UnionTieBreak = "error"
    # Check that fixed values have exactly the declared size.
    validate_fixed_length: bool = True

    def __post_init__(self) -> None:
        if self.union_tie_break not in _UNION_TIE_BREAKS:
            raise ValueError(
                f"Invalid union tie break {self.union_tie_break!r}, "
                f"expected one of {_UNION_TIE_BREAKS}"
            )

    @classmethod
    def from_mapping(cls, conf: Mapping[str, Any] | None) -> "ConverterSettings":
        """Load settings from key/value configuration. Unknown keys are ignored."""
        if not conf:
            return cls()
        kwargs: dict[str, Any] = {}
        if CONF_UNION_TIE_BREAK in conf:
            kwargs["union_tie_break"] = str(conf[CONF_UNION_TIE_BREAK]).strip().lower()
        if CONF_FIXED_VALIDATE_LENGTH in conf:
            kwargs["validate_fixed_length"] = _parse_bool(
                CONF_FIXED_VALIDATE_LENGTH, conf[CONF_FIXED_VALIDATE_LENGTH]
            )
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "ConverterSettings":
        """Load settings from environment variables."""
        conf = {
            key: os.environ[env_var]
            for key, env_var in _ENV_VARS.items()
            if env_var in os.environ
        }
        return cls.from_mapping(conf)


DEFAULT_SETTINGS = ConverterSettings()
