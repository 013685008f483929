"""Validation helpers for list-valued server settings read from the environment."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a string list from an environment variable or config value.

    Accepts a list of strings (returned as-is), a JSON array string
    ('["a","b"]') or a comma-separated string ('a,b').

    Raises ValueError for blank strings or malformed JSON. When allow_empty
    is False (default), also rejects empty lists.
    """
    if isinstance(value, list):
        items = value
    else:
        stripped = value.strip()
        if not stripped:
            if allow_empty:
                return []
            raise ValueError("String list value must not be empty")
        if stripped.startswith("["):
            try:
                items = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
                raise ValueError("JSON value must be an array of strings")
        else:
            items = [item.strip() for item in stripped.split(",") if item.strip()]

    if not allow_empty and not items:
        raise ValueError("String list value must not be empty")
    return items


def parse_username_list(value: str | list[str]) -> list[str]:
    """Parse a possibly-empty username list, lowercased and de-duplicated in order."""
    names = (name.strip().lower() for name in parse_string_list(value, allow_empty=True))
    return list(dict.fromkeys(name for name in names if name))


_STRING_LIST_FIELDS = {"cors_origins", "superadmin_usernames"}


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env settings source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list-typed env vars before validators run,
    which would reject the CSV form. String-list fields bypass that step so
    parse_string_list handles both formats.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
