"""Persisted configuration documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from .config import Settings
from .policy import ConfigError, ConfigStoreError


class ConfigStore(Protocol):
    async def fetch_document(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or ``None`` when nothing was stored yet."""

    async def save_document(self, document: Dict[str, Any]) -> None: ...


class YamlConfigStore:
    """Keep the configuration document in a local YAML file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def fetch_document(self) -> Optional[Dict[str, Any]]:
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ConfigStoreError(f"cannot read {self.path}: {exc}") from exc
        try:
            # undecodable bytes surface as yaml.reader.ReaderError
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"bad markup in {self.path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self.path} must contain a mapping at the top level")
        return data

    async def save_document(self, document: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                yaml.safe_dump(document, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
        except OSError as exc:
            raise ConfigStoreError(f"cannot write {self.path}: {exc}") from exc


def build_config_store(settings: Settings) -> ConfigStore:
    if settings.has_supabase:
        from .supabase import SupabaseConfigStore

        return SupabaseConfigStore(settings)
    return YamlConfigStore(settings.config_path)
