"""Layout and position storage.

Two layout backends share one contract: a local JSON file (with bundled
sample data for a first run) and the remote ``floorplan_layouts`` table
reached through the Supabase REST API. Saves carry no version stamp, the last
writer wins.
"""
from __future__ import annotations
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

import requests

from .models import Layout, PositionRecord, utc_now
from .state import layout_to_dict, layout_from_dict, layouts_from_json, layouts_to_json

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15


class PersistenceError(RuntimeError):
    """Any storage or network failure while loading or saving."""


def _latest(layouts: List[Layout]) -> Optional[Layout]:
    if not layouts:
        return None
    return max(layouts, key=lambda l: l.updated_at or "")


# ===== Layouts =====
class LayoutRepository(ABC):
    def __init__(self):
        self._cache: Optional[List[Layout]] = None

    @abstractmethod
    def _fetch(self) -> List[Layout]:
        pass

    @abstractmethod
    def _write(self, layouts: List[Layout], changed: Optional[Layout], deleted_id: Optional[str]):
        pass

    def load_layouts(self) -> List[Layout]:
        if self._cache is None:
            self._cache = self._fetch()
        return [l.clone() for l in self._cache]

    def invalidate(self):
        self._cache = None

    def get_layout_by_id(self, layout_id: str) -> Optional[Layout]:
        for l in self.load_layouts():
            if l.id == layout_id:
                return l
        return None

    def get_layout_by_object_id(self, object_id: str) -> Optional[Layout]:
        return _latest([l for l in self.load_layouts() if l.object_id == object_id])

    def save_layout(self, layout: Layout) -> Layout:
        saved = layout.clone()
        saved.updated_at = utc_now()
        current = self.load_layouts()
        if any(l.id == saved.id for l in current):
            nxt = [saved if l.id == saved.id else l for l in current]
        else:
            nxt = current + [saved]
        self._write(nxt, saved, None)
        self._cache = nxt
        logger.info("Saved layout %s (%d elements)", saved.id, len(saved.elements))
        return saved.clone()

    def delete_layout(self, layout_id: str):
        current = self.load_layouts()
        nxt = [l for l in current if l.id != layout_id]
        if len(nxt) == len(current):
            return
        self._write(nxt, None, layout_id)
        self._cache = nxt
        logger.info("Deleted layout %s", layout_id)

    def reset_to_sample(self) -> List[Layout]:
        raise PersistenceError(f"{type(self).__name__} has no sample data to reset to")


class JsonLayoutRepository(LayoutRepository):
    def __init__(self, path, sample_path=None):
        super().__init__()
        self.path = Path(path)
        self.sample_path = Path(sample_path) if sample_path else None

    def _read(self, path: Path) -> List[Layout]:
        if not path.exists():
            return []
        try:
            return layouts_from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to parse stored layouts in %s: %s", path, e)
            return []

    def _fetch(self) -> List[Layout]:
        stored = self._read(self.path)
        if stored:
            return stored
        if self.sample_path is not None:
            sample = self._read(self.sample_path)
            if sample:
                logger.info("No stored layouts, using sample data from %s", self.sample_path)
            return sample
        return []

    def _write(self, layouts, changed, deleted_id):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(layouts_to_json(layouts), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            logger.exception("Failed to write layouts to %s", self.path)
            raise PersistenceError(f"Could not save layouts: {e}") from e

    def reset_to_sample(self):
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as e:
            raise PersistenceError(f"Could not remove {self.path}: {e}") from e
        self.invalidate()
        logger.info("Stored layouts cleared, back to sample data")
        return self.load_layouts()


class _SupabaseTable:
    def __init__(self, url: str, key: str, table: str, session=None):
        self.base = f"{url.rstrip('/')}/rest/v1/{table}"
        self.session = session or requests.Session()
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    def request(self, method: str, params: Optional[Dict] = None, payload=None, prefer: Optional[str] = None):
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self.session.request(method, self.base, params=params, json=payload,
                                        headers=headers, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.exception("%s %s failed", method, self.base)
            raise PersistenceError(f"{method} {self.base} failed: {e}") from e
        if not resp.content:
            return []
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"Malformed response from {self.base}") from e


class SupabaseLayoutRepository(LayoutRepository):
    TABLE = "floorplan_layouts"

    def __init__(self, url: str, key: str, session=None):
        super().__init__()
        self.table = _SupabaseTable(url, key, self.TABLE, session)

    @staticmethod
    def _from_row(row: Dict) -> Optional[Layout]:
        data = row.get("layout_data") or {}
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                logger.warning("Skipping layout row %s with corrupt layout_data", row.get("id"))
                return None
        if not isinstance(data, dict):
            return None
        layout = layout_from_dict({
            "id": row.get("id"),
            "name": row.get("name") or data.get("name"),
            "objectId": row.get("store_id"),
            "boundaryWidth": row.get("store_width"),
            "boundaryHeight": row.get("store_height"),
            "elements": data.get("elements") or [],
            "updatedAt": row.get("updated_at") or row.get("created_at"),
        })
        return layout

    @staticmethod
    def _to_row(layout: Layout) -> Dict:
        doc = layout_to_dict(layout)
        return {
            "id": layout.id,
            "store_id": layout.object_id,
            "name": layout.name,
            "store_width": layout.boundary_width,
            "store_height": layout.boundary_height,
            "layout_data": {"name": layout.name, "elements": doc["elements"]},
            "updated_at": layout.updated_at,
        }

    def _fetch(self) -> List[Layout]:
        rows = self.table.request("GET", params={"select": "*", "order": "updated_at.desc"})
        if not isinstance(rows, list):
            raise PersistenceError("Unexpected layouts payload")
        out = []
        for row in rows:
            layout = self._from_row(row) if isinstance(row, dict) else None
            if layout is not None:
                out.append(layout)
        return out

    def _write(self, layouts, changed, deleted_id):
        if changed is not None:
            self.table.request("POST", params={"on_conflict": "id"}, payload=[self._to_row(changed)],
                               prefer="resolution=merge-duplicates,return=minimal")
        if deleted_id is not None:
            self.table.request("DELETE", params={"id": f"eq.{deleted_id}"})


# ===== Positions =====
class PositionRepository(ABC):
    @abstractmethod
    def find_by_store(self, store_id: str) -> List[PositionRecord]:
        pass

    @abstractmethod
    def upsert(self, record: PositionRecord) -> PositionRecord:
        pass

    @abstractmethod
    def delete(self, record_id: str):
        pass

    def get(self, store_id: str, position_number: str) -> Optional[PositionRecord]:
        for rec in self.find_by_store(store_id):
            if rec.position_number == position_number:
                return rec
        return None

    def get_by_id(self, store_id: str, record_id: str) -> Optional[PositionRecord]:
        for rec in self.find_by_store(store_id):
            if rec.id == record_id:
                return rec
        return None


class InMemoryPositionRepository(PositionRepository):
    def __init__(self, records=None):
        self._rows: Dict[tuple, PositionRecord] = {}
        for rec in records or []:
            self.upsert(rec)

    def find_by_store(self, store_id):
        return [PositionRecord(**vars(r)) for r in self._rows.values() if r.store_id == store_id]

    def upsert(self, record):
        existing = self._rows.get(record.key)
        stored = PositionRecord(**vars(record))
        if existing is not None:
            stored.id = existing.id
        self._rows[record.key] = stored
        return PositionRecord(**vars(stored))

    def delete(self, record_id):
        for key, rec in list(self._rows.items()):
            if rec.id == record_id:
                del self._rows[key]


class SupabasePositionRepository(PositionRepository):
    TABLE = "positions"

    def __init__(self, url: str, key: str, session=None):
        self.table = _SupabaseTable(url, key, self.TABLE, session)

    def find_by_store(self, store_id):
        rows = self.table.request("GET", params={"select": "*", "store_id": f"eq.{store_id}"})
        return [PositionRecord.from_row(r) for r in rows if isinstance(r, dict)]

    def upsert(self, record):
        row = record.to_row()
        rows = self.table.request("POST", params={"on_conflict": "store_id,position_number"},
                                  payload=[row], prefer="resolution=merge-duplicates,return=representation")
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            return PositionRecord.from_row(rows[0])
        return record

    def delete(self, record_id):
        self.table.request("DELETE", params={"id": f"eq.{record_id}"})
