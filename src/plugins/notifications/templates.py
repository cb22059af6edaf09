"""Message templates for notification plugins.

Placeholders use ``{{ name }}`` syntax; dotted names walk nested mappings.
Unknown names render as an empty string.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_PLACEHOLDER = re.compile(r"{{\s*([\w.]+)\s*}}")


def _lookup(data: Mapping[str, Any], dotted: str) -> Any:
    value: Any = data
    for part in dotted.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return ""
        value = value[part]
    return value


def interpolate(text: str, data: Mapping[str, Any]) -> str:
    return _PLACEHOLDER.sub(lambda m: str(_lookup(data, m.group(1))), text)


def interpolate_object(template: Mapping[str, Any], data: Mapping[str, Any]) -> dict[str, Any]:
    """Interpolate every string in a (nested) template mapping."""
    result: dict[str, Any] = {}
    for key, value in template.items():
        if isinstance(value, str):
            result[key] = interpolate(value.strip(), data)
        elif isinstance(value, Mapping):
            result[key] = interpolate_object(value, data)
        else:
            result[key] = value
    return result


_BENEFITS = (
    "Here's what you can expect:\n"
    "• Seamless information flow\n"
    "• Real-time updates\n"
    "• Improved team coordination\n\n"
)

DISCORD_TEMPLATES: dict[str, dict[str, Any]] = {
    "welcome": {
        "content": (
            "🎉 Exciting news! The Discord integration has been successfully enabled "
            "for {{ team }}! 🚀\n\n"
            "You'll now receive important notifications and updates directly in "
            "your Discord channel, ensuring everyone stays in the loop.\n\n"
            + _BENEFITS
            + "Happy collaborating! 🤝✨"
        ),
    },
}

TELEGRAM_TEMPLATES: dict[str, dict[str, Any]] = {
    "welcome": {
        "content": (
            "🎉 <b>Exciting news! The Telegram integration has been successfully "
            "enabled for {{ team }}!</b> 🚀\n\n"
            "You'll now receive important notifications and updates directly in "
            "your Telegram chat, ensuring everyone stays in the loop.\n\n"
            + _BENEFITS
            + "<i>Happy collaborating!</i> 🤝✨"
        ),
    },
}
