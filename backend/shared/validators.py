"""Validation helpers for environment-driven settings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a list of strings given as a list, a JSON array, or a comma-separated string.

    Raises ValueError for malformed JSON, and for an empty result unless allow_empty is set.
    """
    if isinstance(value, list):
        items = value
    elif value.strip().startswith("["):
        try:
            items = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
            raise ValueError("JSON value must be an array of strings")
    else:
        items = [item.strip() for item in value.split(",") if item.strip()]

    if not items and not allow_empty:
        raise ValueError("String list value must not be empty")
    return items


STRING_LIST_FIELDS = frozenset({"cors_origins"})


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list fields from env vars before validators
    run, which rejects the comma-separated form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
