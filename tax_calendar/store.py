"""Client profile store adapters."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol, Union

from tax_calendar.profiles import as_flag

logger = logging.getLogger("tax_calendar.store")


class ClientStoreError(RuntimeError):
    """The client list could not be loaded; fatal for a scheduler run."""


class ClientStore(Protocol):
    def fetch_alert_clients(self) -> list[dict[str, Any]]:
        """Every client row with email alerting enabled."""
        ...


def _alerting(rows: Iterable[Any]) -> list[dict[str, Any]]:
    # A non-dict row is passed through so the scheduler can report it per client
    return [
        row
        for row in rows
        if not isinstance(row, dict) or as_flag(row.get("email_alert"))
    ]


class InMemoryClientStore:
    def __init__(self, rows: Iterable[dict[str, Any]] = ()) -> None:
        self.rows = list(rows)

    def fetch_alert_clients(self) -> list[dict[str, Any]]:
        return _alerting(self.rows)


class JsonFileClientStore:
    """
    Reads clients from a JSON file holding an array of client rows
    (or an object with a "clients" array).
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load_all(self) -> list[dict[str, Any]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ClientStoreError(f"Cannot read client store {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ClientStoreError(f"Malformed client store {self.path}: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("clients")
        if not isinstance(data, list):
            raise ClientStoreError(
                f"Client store {self.path} must contain a list of clients"
            )
        return data

    def fetch_alert_clients(self) -> list[dict[str, Any]]:
        rows = _alerting(self.load_all())
        logger.debug("Loaded %d alerting clients from %s", len(rows), self.path)
        return rows
