"""In-memory record API used by the HTTP surface and tests."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class RecordNotFound(KeyError):
    pass


class MemoryRecordStore:
    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, dict]] = {}

    def create(self, entity: str, values: dict) -> dict:
        record_id = str(uuid.uuid4())
        record = copy.deepcopy(values or {})
        record["id"] = record_id
        record.setdefault("createdAt", _now())
        record["updatedAt"] = record["createdAt"]
        self._records.setdefault(entity, {})[record_id] = record
        return copy.deepcopy(record)

    def update(self, entity: str, record_id: Any, changes: dict) -> dict:
        entity_records = self._records.get(entity, {})
        if record_id not in entity_records:
            raise RecordNotFound(f"{entity} record not found: {record_id}")
        entity_records[record_id].update(copy.deepcopy(changes or {}))
        entity_records[record_id]["id"] = record_id
        entity_records[record_id]["updatedAt"] = _now()
        return copy.deepcopy(entity_records[record_id])

    def delete(self, entity: str, record_id: Any) -> None:
        if self._records.get(entity, {}).pop(record_id, None) is None:
            raise RecordNotFound(f"{entity} record not found: {record_id}")

    def get(self, entity: str, record_id: Any) -> dict | None:
        rec = self._records.get(entity, {}).get(record_id)
        return copy.deepcopy(rec) if rec else None

    def list(self, entity: str) -> List[dict]:
        return [copy.deepcopy(v) for v in self._records.get(entity, {}).values()]


class MemoryRecordApi:
    """Record and UI API for one workflow run.

    Record calls hit the shared store; UI calls (navigation, notifications,
    modals, refreshes) are collected in `effects` so the caller can replay them.
    """

    def __init__(self, store: MemoryRecordStore | None = None, variables: dict | None = None) -> None:
        self.store = store if store is not None else MemoryRecordStore()
        self.variables: Dict[str, Any] = dict(variables or {})
        self.effects: List[dict] = []

    async def create_record(self, entity_id: str, data: dict) -> dict:
        record = self.store.create(entity_id, data)
        return {"id": record["id"], "data": record}

    async def update_record(self, entity_id: str, record_id: Any, data: dict) -> dict:
        return {"data": self.store.update(entity_id, record_id, data)}

    async def delete_record(self, entity_id: str, record_id: Any) -> None:
        self.store.delete(entity_id, record_id)

    async def get_record(self, entity_id: str, record_id: Any) -> dict | None:
        return self.store.get(entity_id, record_id)

    def navigate(self, page_id: str, params: dict | None = None) -> None:
        self.effects.append({"type": "navigate", "pageId": page_id, "params": params or {}})

    def show_notification(self, message: str, severity: str = "info") -> None:
        self.effects.append({"type": "notification", "message": message, "severity": severity})

    def show_modal(self, modal_id: str, data: dict | None = None) -> None:
        self.effects.append({"type": "show_modal", "modalId": modal_id, "data": data})

    def close_modal(self, modal_id: str | None = None) -> None:
        self.effects.append({"type": "close_modal", "modalId": modal_id})

    async def refresh_data(self, entity_id: str | None = None) -> None:
        self.effects.append({"type": "refresh", "entityId": entity_id})

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    def notifications(self) -> List[dict]:
        return [e for e in self.effects if e["type"] == "notification"]
