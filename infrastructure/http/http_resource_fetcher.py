# infrastructure/http/http_resource_fetcher.py
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from application.ports.cluster import ResourceFetcherPort
from domain.exceptions import ResourceNotFoundError, TerminalError, TransientError
from domain.resource_state import ProvisioningState
from domain.resources import ResourceRef


class HttpResourceFetcher(ResourceFetcherPort):
    """
    Reads ``status.provisioning.state`` of a resource over an HTTP API.

    404 => ResourceNotFoundError, 401/403/4xx => TerminalError,
    5xx and connection problems => TransientError.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_sec: int = 20,
        verify: bool = True,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._headers = headers or {}
        self._timeout = timeout_sec
        self._verify = verify

    def url_for(self, ref: ResourceRef) -> str:
        return f"{self._base_url}/namespaces/{ref.namespace}/{ref.kind}/{ref.name}"

    def fetch(self, ref: ResourceRef) -> ProvisioningState:
        url = self.url_for(ref)
        try:
            resp = self._session.get(url, headers=self._headers, timeout=self._timeout, verify=self._verify)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"GET {url} failed: {e}") from e

        if resp.status_code == 404:
            raise ResourceNotFoundError(f"{ref} not found")
        if resp.status_code in (401, 403):
            raise TerminalError(f"GET {url} unauthorized: {resp.status_code}")
        if resp.status_code >= 500:
            raise TransientError(f"GET {url} returned {resp.status_code}")
        if resp.status_code >= 400:
            raise TerminalError(f"GET {url} returned {resp.status_code}: {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise TerminalError(f"GET {url} returned malformed JSON") from e

        return self._extract_state(ref, body)

    def _extract_state(self, ref: ResourceRef, body: Any) -> ProvisioningState:
        status = body.get("status") if isinstance(body, dict) else None
        if not status:
            # status is filled in by the controller after creation
            return ProvisioningState.NONE
        raw = (status.get("provisioning") or {}).get("state", "")
        try:
            return ProvisioningState.parse(raw)
        except ValueError as e:
            raise TerminalError(f"{ref} has unknown provisioning state: {raw!r}") from e
