"""Load, migrate and persist the notification configuration."""

from __future__ import annotations

import logging

from .policy import (
    ConfigError,
    ConfigStoreError,
    MigrationAction,
    NotificationConfig,
    load_notification_config,
)
from .stores import ConfigStore

logger = logging.getLogger(__name__)

LICENSE_NOTICE = (
    "LonelyServer is free software. For more information, see "
    "http://www.gnu.org/licenses/quick-guide-gplv3.html and http://www.gnu.org/licenses/gpl.txt"
)
SOURCE_NOTICE = "LonelyServer's source code is available as per its license here: https://github.com/jmhertlein/LonelyServer"


class ConfigManager:
    """Own the process-wide :class:`NotificationConfig`.

    Configuration problems never escape :meth:`load`: they are logged and the
    last valid configuration stays in effect. Before the first successful load
    that is the built-in default.
    """

    def __init__(self, store: ConfigStore, initial: NotificationConfig | None = None) -> None:
        self.store = store
        self._current = initial or NotificationConfig()

    @property
    def current(self) -> NotificationConfig:
        return self._current

    async def load(self) -> NotificationConfig:
        try:
            raw = await self.store.fetch_document()
            result = load_notification_config(raw)
        except (ConfigError, ConfigStoreError) as exc:
            logger.error("Error loading config; probably bad markup in the file? (%s)", exc)
            return self._current

        if result.first_run:
            logger.info(LICENSE_NOTICE)
            logger.info(SOURCE_NOTICE)
        for warning in result.warnings:
            logger.warning(warning)
        if result.migrated:
            logger.info("Found old message format, converting to list of messages")

        self._current = result.config
        if result.action is not MigrationAction.NONE and result.document is not None:
            await self._persist(result.document, result.action)

        logger.info("Configuration: loaded %d messages", len(self._current.message_templates))
        return self._current

    async def _persist(self, document: dict, action: MigrationAction) -> None:
        try:
            await self.store.save_document(document)
        except ConfigStoreError as exc:
            logger.error("Error writing config (%s): %s", action.value, exc)
            return
        if action is MigrationAction.WRITE_DEFAULTS:
            logger.info("Default config written.")
        else:
            logger.info("Migrated config written.")
