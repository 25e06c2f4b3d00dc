"""Completion options and where they come from."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any

from .constants import ENV_OPTION_PREFIX

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class CompletionOptions:
    """User-facing switches for the completion engine."""

    enable_extension_methods_suggestions: bool = True
    filter_out_obsolete_symbols: bool = True
    sort_completions_after_imported: bool = True
    user_code_only_suggestions: bool = False
    place_system_namespace_first: bool = True
    receiver_numeric_widening: bool = True

    @classmethod
    def from_environment(cls, environ: dict[str, str] | None = None) -> CompletionOptions:
        """Read overrides such as ``EXTMETHOD_LSP_FILTER_OUT_OBSOLETE_SYMBOLS=0``."""
        environ = os.environ if environ is None else environ
        overrides: dict[str, bool] = {}
        for option in dataclasses.fields(cls):
            raw = environ.get(f"{ENV_OPTION_PREFIX}{option.name.upper()}")
            if raw is None:
                continue
            value = raw.strip().lower()
            if value in _TRUE_VALUES:
                overrides[option.name] = True
            elif value in _FALSE_VALUES:
                overrides[option.name] = False
            else:
                logger.warning(f"Ignoring invalid value {raw!r} for option {option.name}")
        return cls(**overrides)

    def merged(self, settings: dict[str, Any] | None) -> CompletionOptions:
        """Apply LSP ``initializationOptions`` (camelCase or snake_case keys)."""
        if not settings:
            return self
        known = {option.name for option in dataclasses.fields(self)}
        overrides: dict[str, bool] = {}
        for key, value in settings.items():
            name = _snake_case(key)
            if name not in known:
                logger.debug(f"Unknown completion option {key!r}")
                continue
            if not isinstance(value, bool):
                logger.warning(f"Option {key!r} expects a boolean, got {value!r}")
                continue
            overrides[name] = value
        return dataclasses.replace(self, **overrides)


def _snake_case(name: str) -> str:
    chars = []
    for char in name:
        if char.isupper():
            chars.append("_")
            chars.append(char.lower())
        else:
            chars.append(char)
    return "".join(chars).lstrip("_")
