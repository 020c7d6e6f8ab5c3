"""
Record store clients.

`SupabaseStore` talks to the PostgREST endpoint of a Supabase project over
HTTP. `MemoryStore` keeps records in process when no remote store is
configured. Both implement `RecordStore`; the web app receives one through
dependency injection (see `build_store`).

Remote failures never raise out of a store call: they are logged and
reported as `None`, `[]` or `False`.
"""

from __future__ import annotations

import abc
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Settings
from .log_config import get_logger
from .models import Character, CharacterBase

log = get_logger(__name__)


class RecordStore(abc.ABC):
    """
    CRUD contract for character records.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    """

    name: str

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Whether a remote backend is connected."""
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_all(self) -> List[Character]:
        """Return every record, newest first."""
        raise NotImplementedError

    @abc.abstractmethod
    def upsert(self, record: CharacterBase) -> Optional[Character]:
        """Insert a new record or replace the one with the same id."""
        raise NotImplementedError

    @abc.abstractmethod
    def insert_bulk(self, records: Iterable[CharacterBase]) -> List[Character]:
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, record_id: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def delete_many(self, record_ids: Iterable[str]) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore(RecordStore):
    """In-process store; assigns ids and timestamps locally."""

    name = "memory"

    def __init__(self) -> None:
        self._records: Dict[str, Character] = {}

    def is_available(self) -> bool:
        return False

    def fetch_all(self) -> List[Character]:
        return list(reversed(list(self._records.values())))

    def _stored(self, record: CharacterBase) -> Character:
        data = record.model_dump()
        record_id = data.pop("id", None) or str(uuid.uuid4())
        previous = self._records.get(record_id)
        created_at = data.pop("created_at", None) or (previous.created_at if previous else _now())
        return Character(id=record_id, created_at=created_at, **data)

    def upsert(self, record: CharacterBase) -> Optional[Character]:
        stored = self._stored(record)
        self._records[stored.id] = stored
        return stored

    def insert_bulk(self, records: Iterable[CharacterBase]) -> List[Character]:
        stored = [self._stored(record) for record in records]
        for item in stored:
            self._records[item.id] = item
        return stored

    def delete(self, record_id: str) -> bool:
        self._records.pop(record_id, None)
        return True

    def delete_many(self, record_ids: Iterable[str]) -> bool:
        for record_id in record_ids:
            self._records.pop(record_id, None)
        return True


class SupabaseStore(RecordStore):
    """
    Record store backed by a Supabase table through its REST interface.

    Transient transport errors are retried up to 3 times with exponential
    backoff. HTTP error statuses are not retried.
    """

    name = "supabase"

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = "characters",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def is_available(self) -> bool:
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _send(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[object] = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        response = self._client.request(method, self.endpoint, params=params, json=json, headers=headers)
        response.raise_for_status()
        return response

    def fetch_all(self) -> List[Character]:
        try:
            response = self._send("GET", params={"select": "*", "order": "created_at.desc"})
            return [Character.model_validate(item) for item in response.json()]
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            log.error("Error fetching characters: %s", e)
            return []

    def upsert(self, record: CharacterBase) -> Optional[Character]:
        payload = record.model_dump(mode="json", exclude_none=True)
        try:
            response = self._send(
                "POST",
                json=payload,
                prefer="resolution=merge-duplicates,return=representation",
            )
            rows = response.json()
            if not rows:
                log.error("Upsert returned no representation for %r", record.name)
                return None
            return Character.model_validate(rows[0])
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            log.error("Error upserting character %r: %s", record.name, e)
            return None

    def insert_bulk(self, records: Iterable[CharacterBase]) -> List[Character]:
        payload = [record.model_dump(mode="json", exclude_none=True) for record in records]
        if not payload:
            return []
        try:
            response = self._send("POST", json=payload, prefer="return=representation")
            return [Character.model_validate(item) for item in response.json()]
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            log.error("Error batch inserting %d character(s): %s", len(payload), e)
            return []

    def delete(self, record_id: str) -> bool:
        try:
            self._send("DELETE", params={"id": f"eq.{record_id}"})
            return True
        except httpx.HTTPError as e:
            log.error("Error deleting character %s: %s", record_id, e)
            return False

    def delete_many(self, record_ids: Iterable[str]) -> bool:
        ids = list(record_ids)
        if not ids:
            return True
        try:
            self._send("DELETE", params={"id": f"in.({','.join(ids)})"})
            return True
        except httpx.HTTPError as e:
            log.error("Error clearing %d character(s): %s", len(ids), e)
            return False

    def close(self) -> None:
        self._client.close()


def build_store(settings: Settings) -> RecordStore:
    """Remote store when configured, otherwise the in-process fallback."""
    if settings.store_configured:
        return SupabaseStore(
            url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            table=settings.supabase_table,
            timeout=settings.store_timeout,
        )
    log.warning("Record store not configured; keeping records in memory.")
    return MemoryStore()


__all__ = ["RecordStore", "MemoryStore", "SupabaseStore", "build_store"]
