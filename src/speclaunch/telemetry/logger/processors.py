# src/speclaunch/telemetry/logger/processors.py

"""
Custom structlog processors used by the speclaunch logging setup.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS: dict[Any, str] = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
    "config": "📄",
    "step": "🪜",
    "filter": "🔎",
    "coverage": "📊",
    "engine": "🧪",
    "state": "🔁",
    "general": "➡️",
}

# Keys that only make sense inside the processor chain.
_INTERNAL_KEYS = ("emoji_key",)


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji picked from `emoji_key` or the log level."""
    emoji_key: Any = event_dict.get("emoji_key")
    if emoji_key is None:
        emoji_key = logging.getLevelName(method_name.upper())
    emoji = LOG_EMOJIS.get(emoji_key, LOG_EMOJIS["general"])

    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drops processor-only keys before rendering."""
    for key in _INTERNAL_KEYS:
        event_dict.pop(key, None)
    return event_dict

# 🔼⚙️
