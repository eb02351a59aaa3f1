from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..config import AppConfig
from ..utils.retry import with_retries
from .store import StoreError


logger = logging.getLogger(__name__)

COLUMNS = "id,value,created_at"


class RestReadingStore:
    """Reading store backed by a PostgREST endpoint (e.g. Supabase).

    Queries the configured table over ``/rest/v1``. Transient failures are
    retried with exponential backoff; the final failure surfaces as
    `StoreError`.
    """

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        if not config.env.STORE_URL:
            raise ValueError("STORE_URL is not configured")
        self.config = config
        self.base_url = f"{config.env.STORE_URL.rstrip('/')}/rest/v1/{config.runtime.table}"
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        key = config.env.STORE_API_KEY
        if key:
            self.session.headers.update({"apikey": key, "Authorization": f"Bearer {key}"})

    def _get(self, params: Any) -> List[Dict[str, Any]]:
        rt = self.config.runtime

        def call() -> List[Dict[str, Any]]:
            resp = self.session.get(self.base_url, params=params, timeout=rt.network_timeout_sec)
            resp.raise_for_status()
            return resp.json()

        try:
            return with_retries(
                call,
                max_attempts=rt.max_retries,
                base_seconds=rt.backoff_base_sec,
                cap_seconds=rt.backoff_cap_sec,
                retry_on=(requests.RequestException,),
            )
        except requests.RequestException as exc:
            logger.error("store query failed", extra={"table": rt.table, "error": str(exc)})
            raise StoreError(f"query on {rt.table} failed: {exc}") from exc
        except ValueError as exc:
            raise StoreError(f"malformed response from {rt.table}: {exc}") from exc

    def fetch_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: int,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        params: List[Any] = [
            ("select", COLUMNS),
            ("order", "created_at.desc" if descending else "created_at.asc"),
            ("limit", str(limit)),
        ]
        if start is not None:
            params.append(("created_at", f"gte.{start.isoformat()}"))
        if end is not None:
            params.append(("created_at", f"lte.{end.isoformat()}"))
        return self._get(params)

    def fetch_since(self, cursor_id: int) -> List[Dict[str, Any]]:
        return self._get({"select": COLUMNS, "id": f"gt.{cursor_id}", "order": "id.asc"})

    def fetch_latest_id(self) -> Optional[int]:
        rows = self._get({"select": "id", "order": "id.desc", "limit": "1"})
        if not rows:
            return None
        try:
            return int(rows[0]["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"malformed id in latest row: {rows[0]!r}") from exc
