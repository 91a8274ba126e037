"""Key/value settings persisted as one JSON blob in a single-row ``config`` table."""

import json
from typing import Any

import structlog

from schemasync.services.catalog import CatalogSnapshot
from schemasync.services.executor import Executor
from schemasync.services.schema import SchemaSynchronizer

CONFIG_TABLE = "config"
CONFIG_FIELDS = {"settings": "TEXT NOT NULL DEFAULT ''"}


class SettingsStore:
    """Reads the settings blob once per session and rewrites it in full on change.

    A value of None is never stored; setting a key to None removes it.
    """

    def __init__(
        self,
        executor: Executor,
        catalog: CatalogSnapshot,
        schema: SchemaSynchronizer,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self._schema = schema
        self._logger = logger or structlog.get_logger(__name__)

    def all(self) -> dict[str, Any]:
        return dict(self._load())

    def get(self, name: str, default: Any = None) -> Any:
        return self._load().get(name, default)

    def set(self, name: str, value: Any) -> bool:
        """Store ``value`` under ``name``, or remove ``name`` when value is None.

        Returns:
            True if the stored blob changed, False if nothing changed or the
            update failed.
        """
        settings = self._load()
        if value is None:
            if name not in settings:
                return False
            updated = {key: current for key, current in settings.items() if key != name}
        elif name in settings and settings[name] == value:
            return False
        else:
            updated = {**settings, name: value}

        try:
            blob = json.dumps(updated)
        except (TypeError, ValueError) as e:
            self._logger.warning("settings_unserializable", name=name, error=str(e))
            return False
        if not self._executor.execute(f"UPDATE {CONFIG_TABLE} SET settings = ?", (blob,)):
            return False
        self._catalog.settings = updated
        self._logger.debug("setting_updated", name=name, removed=value is None)
        return True

    def _load(self) -> dict[str, Any]:
        if self._catalog.settings is not None:
            return self._catalog.settings

        self._schema.create(CONFIG_TABLE, CONFIG_FIELDS)
        blob = self._executor.value(f"SELECT settings FROM {CONFIG_TABLE} LIMIT 1")
        if blob is None:
            self._executor.execute(f"INSERT INTO {CONFIG_TABLE} (settings) VALUES (?)", (json.dumps({}),))

        settings: dict[str, Any] = {}
        if blob:
            try:
                settings = json.loads(blob)
            except json.JSONDecodeError as e:
                self._logger.warning("settings_unreadable", error=str(e))
        self._catalog.settings = settings
        return settings
