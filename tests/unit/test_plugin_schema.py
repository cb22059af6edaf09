"""Tests for plugin config validation and field description."""

from __future__ import annotations

from typing import Optional

import pytest
from pydantic import BaseModel, Field

from src.core.exceptions import InvalidPluginConfigError, PluginValidationError
from src.core.types import FieldType
from src.plugins.schema import describe_fields, is_config_complete, validate_config


class _WebhookConfig(BaseModel):
    url: str = Field(
        title="Webhook URL",
        description="Where events are posted",
        json_schema_extra={"placeholder": "https://example.com/hook"},
    )
    retries: int = 3
    ratio: Optional[float] = None
    secure: bool | None = None
    tags: list[str] = Field(default_factory=list)


class TestDescribeFields:
    def test_no_schema(self) -> None:
        assert describe_fields(None) == []

    def test_declaration_order(self) -> None:
        assert [f.key for f in describe_fields(_WebhookConfig)] == [
            "url", "retries", "ratio", "secure", "tags",
        ]

    def test_types(self) -> None:
        types = [f.type for f in describe_fields(_WebhookConfig)]
        assert types == [
            FieldType.TEXT,
            FieldType.NUMBER,
            FieldType.NUMBER,
            FieldType.BOOLEAN,
            FieldType.TEXT,
        ]

    def test_display_metadata(self) -> None:
        url = describe_fields(_WebhookConfig)[0]
        assert url.label == "Webhook URL"
        assert url.help_text == "Where events are posted"
        assert url.placeholder == "https://example.com/hook"

    def test_label_defaults_to_key(self) -> None:
        retries = describe_fields(_WebhookConfig)[1]
        assert retries.label == "retries"
        assert retries.help_text == ""


class TestValidateConfig:
    def test_passthrough_without_schema(self) -> None:
        assert validate_config("raw", None, {"a": 1}) == {"a": 1}
        assert validate_config("raw", None, None) == {}

    def test_defaults_filled(self) -> None:
        result = validate_config("hook", _WebhookConfig, {"url": "https://x"})
        assert result == {
            "url": "https://x",
            "retries": 3,
            "ratio": None,
            "secure": None,
            "tags": [],
        }

    def test_coercion(self) -> None:
        result = validate_config("hook", _WebhookConfig, {"url": "https://x", "retries": "5"})
        assert result["retries"] == 5

    def test_missing_required_field(self) -> None:
        with pytest.raises(InvalidPluginConfigError) as exc_info:
            validate_config("hook", _WebhookConfig, {"retries": 1})
        err = exc_info.value
        assert err.plugin == "hook"
        assert err.field == "url"
        assert str(err).startswith("Invalid configuration for plugin hook: url:")
        assert isinstance(err, PluginValidationError)

    def test_first_violation_reported(self) -> None:
        with pytest.raises(InvalidPluginConfigError) as exc_info:
            validate_config("hook", _WebhookConfig, {"url": "https://x", "retries": "many"})
        assert exc_info.value.field == "retries"


class TestIsConfigComplete:
    @pytest.mark.parametrize(
        ("config", "expected"),
        [
            ({"a": "x", "b": 1}, True),
            ({"a": "x", "b": False}, True),
            ({"a": "x", "b": ""}, False),
            ({"a": "x", "b": None}, False),
            ({}, False),
            (None, False),
        ],
    )
    def test_cases(self, config: dict | None, expected: bool) -> None:
        assert is_config_complete(config) is expected
