"""
Champion catalog proxied from Riot's Data Dragon.
"""

import logging
import threading
import time
from typing import Dict, List, Optional

import requests

from .config import ServerConfig

logger = logging.getLogger(__name__)


class ChampionCatalog:
    """Fetches the latest champion list and caches it for a configurable TTL."""

    def __init__(self, config: ServerConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self._cache: Optional[List[Dict[str, str]]] = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def get_champions(self) -> List[Dict[str, str]]:
        """
        Return ``[{id, name, image}]`` sorted by name.

        Raises:
            requests.RequestException: If Data Dragon cannot be reached
        """
        with self._lock:
            age = time.monotonic() - self._fetched_at
            if self._cache is not None and age < self.config.champion_cache_ttl:
                return self._cache
            self._cache = self._fetch()
            self._fetched_at = time.monotonic()
            return self._cache

    def _fetch(self) -> List[Dict[str, str]]:
        timeout = self.config.champion_request_timeout
        response = self.session.get(self.config.champion_versions_url, timeout=timeout)
        response.raise_for_status()
        version = response.json()[0]

        response = self.session.get(self.config.champion_data_url.format(version=version), timeout=timeout)
        response.raise_for_status()
        data = response.json()["data"]

        champions = [
            {
                "id": champ["id"],
                "name": champ["name"],
                "image": self.config.champion_image_url.format(version=version, image=champ["image"]["full"]),
            }
            for champ in data.values()
        ]
        champions.sort(key=lambda c: c["name"])
        logger.info(f"Loaded {len(champions)} champions from Data Dragon {version}")
        return champions
