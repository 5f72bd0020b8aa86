"""Narrative lookup source: ``{heat: {tag: 0..100}, coins: {asset_id: [tag, ...]}}``.

Loaded from an http(s) URL or a local JSON file. The last good lookup is
kept so a failed reload can fall back to it.
"""
import json
from pathlib import Path
from typing import Optional

import requests

from common.errors import NarrativeUnavailable
from common.logger import get_logger
from common.models import NarrativeLookup
from config.settings import HTTP_TIMEOUT

logger = get_logger("narratives")


class NarrativeSource:

    def __init__(self, location: str, timeout: float = HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.location = location
        self.timeout = timeout
        self.session = session or requests.Session()
        self.last_good: Optional[NarrativeLookup] = None

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def _read(self):
        if self.is_remote:
            try:
                resp = self.session.get(self.location, timeout=self.timeout,
                                        headers={"Cache-Control": "no-store"})
            except requests.RequestException as e:
                raise NarrativeUnavailable(f"Narratives not loaded ({e})") from e
            if not resp.ok:
                raise NarrativeUnavailable(f"Narratives not loaded (HTTP {resp.status_code})")
            try:
                return resp.json()
            except ValueError as e:
                raise NarrativeUnavailable("Narratives not loaded (invalid JSON)") from e

        try:
            return json.loads(Path(self.location).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise NarrativeUnavailable(f"Narratives not loaded ({e})") from e

    def load(self) -> NarrativeLookup:
        """Fetch and sanitize the lookup. Raises NarrativeUnavailable on failure."""
        lookup = NarrativeLookup.from_raw(self._read())
        self.last_good = lookup
        logger.info(f"Loaded narratives: {len(lookup.heat)} tags, {len(lookup.coins)} coins")
        return lookup
