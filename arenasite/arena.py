from __future__ import annotations

import json
import sys
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Optional, TypeVar

import requests

from .config import Settings
from .models import Channel

USER_AGENT = "arenasite/1.0 (static site builder)"
PAGE_SIZE = 100
DECODE_ERRORS = (ValueError, KeyError, TypeError)

T = TypeVar("T")
GetJson = Callable[[str, dict], dict]


class FetchError(Exception):
    pass


class ArenaClient:
    """Reads a channel from the Are.na API.

    Requests go through a ``requests`` session; if anything in that attempt
    fails, the whole operation is retried once over ``urllib.request``.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        fallback_timeout: float = 15.0,
        per: int = PAGE_SIZE,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout = timeout
        self.fallback_timeout = fallback_timeout
        self.per = per

    def channel_url(self) -> str:
        slug = urllib.parse.quote(self.settings.channel_slug, safe="")
        return f"{self.settings.api_base}/channels/{slug}"

    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.settings.access_token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def get_with_requests(self, url: str, params: dict) -> dict:
        response = self.session.get(url, params=params, headers=self.headers(), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_with_urllib(self, url: str, params: dict) -> dict:
        req = urllib.request.Request(
            f"{url}?{urllib.parse.urlencode(params)}", headers=self.headers(), method="GET"
        )
        with urllib.request.urlopen(req, timeout=self.fallback_timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def with_fallback(self, operation: Callable[[GetJson], T]) -> T:
        try:
            return operation(self.get_with_requests)
        except (requests.RequestException, *DECODE_ERRORS) as exc:
            print(f"Channel request failed ({exc}); retrying with fallback transport.", file=sys.stderr)
        try:
            return operation(self.get_with_urllib)
        except (OSError, *DECODE_ERRORS) as exc:
            raise FetchError(f"Failed to fetch Are.na channel data: {exc}") from exc

    def read_page(self, get_json: GetJson, url: str, page: int) -> dict:
        data = get_json(url, {"per": self.per, "page": page})
        if not isinstance(data, dict):
            raise ValueError("unexpected channel payload")
        return data

    def read_channel(self, get_json: GetJson) -> Channel:
        url = self.channel_url()
        page = 1
        data = self.read_page(get_json, url, page)
        records = list(data.get("contents") or [])
        total = int(data.get("length") or len(records))
        while len(records) < total:
            page += 1
            contents = self.read_page(get_json, url, page).get("contents") or []
            if not contents:
                break
            records.extend(contents)
        return Channel.from_api(data, records)

    def read_length(self, get_json: GetJson) -> int:
        data = get_json(self.channel_url(), {"per": 1, "page": 1})
        if "length" in data:
            return int(data["length"])
        return len(data["contents"])

    def fetch_channel(self) -> Channel:
        return self.with_fallback(self.read_channel)

    def fetch_block_count(self) -> int:
        return self.with_fallback(self.read_length)
