"""Plugin configuration schemas — validation and form field description."""

from __future__ import annotations

import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from src.core.exceptions import InvalidPluginConfigError
from src.core.logging import get_logger
from src.core.types import FieldType

log = get_logger(__name__)


@dataclass(frozen=True)
class PluginField:
    """One configuration input a generic form renderer should display."""

    key: str
    label: str
    type: FieldType
    help_text: str = ""
    placeholder: str = ""


def _unwrap_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _field_type(annotation: Any) -> FieldType:
    inner = _unwrap_optional(annotation)
    if inner is bool:
        return FieldType.BOOLEAN
    if inner in (int, float):
        return FieldType.NUMBER
    return FieldType.TEXT


def describe_fields(schema: type[BaseModel] | None) -> list[PluginField]:
    """Derive form fields from a config model, in declaration order."""
    if schema is None:
        return []

    fields: list[PluginField] = []
    for key, info in schema.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        fields.append(
            PluginField(
                key=key,
                label=info.title or key,
                type=_field_type(info.annotation),
                help_text=info.description or "",
                placeholder=str(extra.get("placeholder", "")),
            )
        )
    return fields


def validate_config(
    plugin_key: str,
    schema: type[BaseModel] | None,
    config: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Validate tenant-supplied config and return its JSON-safe form.

    Raises:
        InvalidPluginConfigError: naming the first violated field.
    """
    raw = dict(config or {})
    if schema is None:
        return raw

    try:
        model = schema.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        detail = f"{field}: {first['msg']}" if field else first["msg"]
        log.warning(
            "plugin_config_invalid",
            plugin=plugin_key,
            field=field,
            errors=exc.error_count(),
        )
        raise InvalidPluginConfigError(
            f"Invalid configuration for plugin {plugin_key}: {detail}",
            plugin=plugin_key,
            field=field,
            context={"errors": exc.errors(include_url=False)},
        ) from exc

    return model.model_dump(mode="json")


def is_config_complete(config: Mapping[str, Any] | None) -> bool:
    """True when the config has at least one key and every value is filled in."""
    if not config:
        return False
    return all(value is not None and value != "" for value in config.values())
