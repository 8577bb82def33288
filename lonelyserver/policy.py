"""Notification configuration model and legacy format migration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

DEFAULT_TEMPLATE = "The last player only logged off $TIME ago."
DEFAULT_THRESHOLD_HOURS = 6

STYLE_KEY = "styleTag"
THRESHOLD_KEY = "thresholdHours"
TEMPLATES_KEY = "messageTemplates"
LEGACY_MESSAGE_KEY = "message"

# key names used by earlier releases, read as fallbacks and renamed on rewrite
LEGACY_STYLE_KEY = "chatColor"
LEGACY_THRESHOLD_KEY = "timeThresholdHours"
LEGACY_TEMPLATES_KEY = "messages"
LEGACY_KEYS = (LEGACY_MESSAGE_KEY, LEGACY_STYLE_KEY, LEGACY_THRESHOLD_KEY, LEGACY_TEMPLATES_KEY)

MISSING_MESSAGES_WARNING = "No messages found (bad formatting?); loaded default"


class ConfigError(ValueError):
    """Raised when a persisted configuration document cannot be used."""


class ConfigStoreError(RuntimeError):
    """Raised when the configuration document cannot be read or written."""


class StyleTag(str, Enum):
    BLACK = "0"
    DARK_BLUE = "1"
    DARK_GREEN = "2"
    DARK_AQUA = "3"
    DARK_RED = "4"
    DARK_PURPLE = "5"
    GOLD = "6"
    GRAY = "7"
    DARK_GRAY = "8"
    BLUE = "9"
    GREEN = "a"
    AQUA = "b"
    RED = "c"
    LIGHT_PURPLE = "d"
    YELLOW = "e"
    WHITE = "f"
    MAGIC = "k"
    BOLD = "l"
    STRIKETHROUGH = "m"
    UNDERLINE = "n"
    ITALIC = "o"
    RESET = "r"

    @property
    def code(self) -> str:
        """Legacy chat formatting code, e.g. ``§3`` for DARK_AQUA."""
        return f"§{self.value}"

    def apply(self, text: str) -> str:
        return f"{self.code}{text}"

    @classmethod
    def parse(cls, value: Any) -> "StyleTag":
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ConfigError(f"{STYLE_KEY} must be a string, got {type(value).__name__}")
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ConfigError(f"unknown {STYLE_KEY}: {value!r}") from None


DEFAULT_STYLE = StyleTag.DARK_AQUA


@dataclass(frozen=True, slots=True)
class NotificationConfig:
    style_tag: StyleTag = DEFAULT_STYLE
    threshold_hours: int = DEFAULT_THRESHOLD_HOURS
    message_templates: Tuple[str, ...] = (DEFAULT_TEMPLATE,)

    def __post_init__(self) -> None:
        if not self.message_templates:
            raise ValueError("message_templates must not be empty")
        if self.threshold_hours < 0:
            raise ValueError("threshold_hours must be >= 0")


class MigrationAction(str, Enum):
    NONE = "none"
    WRITE_DEFAULTS = "write_defaults"
    REWRITE_MIGRATED = "rewrite_migrated"


@dataclass(frozen=True, slots=True)
class LoadResult:
    config: NotificationConfig
    action: MigrationAction = MigrationAction.NONE
    document: Dict[str, Any] | None = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    first_run: bool = False

    @property
    def migrated(self) -> bool:
        return self.action is MigrationAction.REWRITE_MIGRATED


def dump_notification_config(config: NotificationConfig, base: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    """Render ``config`` into its persisted form, keeping unrelated keys of ``base``."""

    document = dict(base or {})
    for key in LEGACY_KEYS:
        document.pop(key, None)
    document[STYLE_KEY] = config.style_tag.name
    document[THRESHOLD_KEY] = config.threshold_hours
    document[TEMPLATES_KEY] = list(config.message_templates)
    return document


def load_notification_config(raw: Mapping[str, Any] | None) -> LoadResult:
    """Build a :class:`NotificationConfig` from a persisted document.

    ``raw`` is ``None`` when no document exists yet. In that case the built-in
    defaults are returned together with the document that should be written.
    A document whose template list is empty is migrated from the legacy
    single ``message`` field when present, otherwise the default template is
    used and a warning is reported. Documents that still use the key names
    of earlier releases (``chatColor``, ``timeThresholdHours``, ``messages``)
    are read through those names and rewritten under the current ones.
    Unusable documents raise :class:`ConfigError`.
    """

    if raw is None:
        config = NotificationConfig()
        return LoadResult(
            config=config,
            action=MigrationAction.WRITE_DEFAULTS,
            document=dump_notification_config(config),
            first_run=True,
        )
    if not isinstance(raw, Mapping):
        raise ConfigError(f"config root must be a mapping, got {type(raw).__name__}")

    style_value = _first_present(raw, STYLE_KEY, LEGACY_STYLE_KEY)
    style = StyleTag.parse(style_value) if style_value is not None else DEFAULT_STYLE
    threshold = _parse_threshold(_first_present(raw, THRESHOLD_KEY, LEGACY_THRESHOLD_KEY))
    templates = _parse_templates(raw.get(TEMPLATES_KEY)) or _parse_templates(raw.get(LEGACY_TEMPLATES_KEY))
    renamed = any(key in raw for key in (LEGACY_STYLE_KEY, LEGACY_THRESHOLD_KEY, LEGACY_TEMPLATES_KEY))

    if templates:
        config = NotificationConfig(style, threshold, templates)
        if not renamed:
            return LoadResult(config=config)
        return LoadResult(
            config=config,
            action=MigrationAction.REWRITE_MIGRATED,
            document=dump_notification_config(config, base=raw),
        )

    legacy = raw.get(LEGACY_MESSAGE_KEY)
    if legacy is not None:
        if not isinstance(legacy, str):
            raise ConfigError(f"{LEGACY_MESSAGE_KEY} must be a string")
        config = NotificationConfig(style, threshold, (legacy,))
        return LoadResult(
            config=config,
            action=MigrationAction.REWRITE_MIGRATED,
            document=dump_notification_config(config, base=raw),
        )

    return LoadResult(
        config=NotificationConfig(style, threshold, (DEFAULT_TEMPLATE,)),
        warnings=(MISSING_MESSAGES_WARNING,),
    )


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _parse_threshold(value: Any) -> int:
    if value is None:
        return DEFAULT_THRESHOLD_HOURS
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{THRESHOLD_KEY} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigError(f"{THRESHOLD_KEY} must be >= 0, got {value}")
    return value


def _parse_templates(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError(f"{TEMPLATES_KEY} must be a list")
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(f"{TEMPLATES_KEY} entries must be strings, got {item!r}")
    return tuple(value)
