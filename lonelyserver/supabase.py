"""Supabase integration utilities."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .policy import ConfigError, ConfigStoreError

CONFIG_TABLE = "plugin_configs"


@dataclass
class SupabaseConfigStore:
    """Fetch and persist the configuration document via Supabase REST API."""

    settings: Settings
    _runtime_document: Optional[Dict[str, Any]] = None
    _client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> Optional[httpx.AsyncClient]:
        """REST client for the configured project, or ``None`` to keep the document in memory."""
        if self._client is None and self.settings.has_supabase:
            key = self.settings.supabase_service_role_key
            self._client = httpx.AsyncClient(
                base_url=str(self.settings.supabase_url),
                headers={"apikey": key, "Authorization": f"Bearer {key}"},
                timeout=15,
            )
        return self._client

    async def fetch_document(self) -> Optional[Dict[str, Any]]:
        if not self.client:
            # no credentials: the document only lives in this process
            return copy.deepcopy(self._runtime_document)

        params = {"select": "payload", "name": f"eq.{self.settings.config_key}", "limit": "1"}
        try:
            response = await self.client.get(f"/rest/v1/{CONFIG_TABLE}", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ConfigStoreError(f"cannot fetch config {self.settings.config_key!r}: {exc}") from exc
        if not isinstance(data, list):
            raise ConfigStoreError(f"unexpected response for config {self.settings.config_key!r}: {data!r}")
        if not data:
            return None
        if not isinstance(data[0], dict):
            raise ConfigStoreError(f"unexpected row for config {self.settings.config_key!r}: {data[0]!r}")
        payload = data[0].get("payload")
        if payload is None:
            return None
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                raise ConfigError(f"config payload is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("config payload must be a JSON object")
        return payload

    async def save_document(self, document: Dict[str, Any]) -> None:
        if not self.client:
            self._runtime_document = copy.deepcopy(document)
            return

        row = {"name": self.settings.config_key, "payload": document}
        try:
            response = await self.client.post(
                f"/rest/v1/{CONFIG_TABLE}",
                json=row,
                headers={"Prefer": "resolution=merge-duplicates"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigStoreError(f"cannot save config {self.settings.config_key!r}: {exc}") from exc

    def seed_document(self, document: Optional[Dict[str, Any]]) -> None:
        """Utility for tests: seed the in-memory configuration document."""

        self._runtime_document = document

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()

