"""
Trakt catalog client (API v2).

Every list method returns MediaItem objects and never raises: missing
credentials produce a warning and an empty list, provider errors an error
line and an empty list. Entries without an IMDb id are useless to the
release index and are dropped.
"""

import logging
from typing import Any, Dict, List, Optional

from rd_autoadd.errors import ProviderError
from rd_autoadd.http import ApiSession, call_with_backoff
from rd_autoadd.models import MediaItem

log = logging.getLogger(__name__)

TRAKT_API_URL = "https://api.trakt.tv"


def _media_item(media: Any, media_type: str) -> Optional[MediaItem]:
    if not isinstance(media, dict):
        return None
    imdb_id = (media.get("ids") or {}).get("imdb")
    if not imdb_id:
        return None
    try:
        year = int(media.get("year") or 0)
    except (TypeError, ValueError):
        year = 0
    return MediaItem(
        external_id=str(imdb_id),
        title=str(media.get("title") or ""),
        year=year,
        media_type=media_type,
    )


class TraktClient:
    def __init__(self, client_id: str = "", access_token: str = "", base_url: str = TRAKT_API_URL):
        self.client_id = client_id
        self.access_token = access_token
        headers = {
            "Content-Type": "application/json",
            "trakt-api-version": "2",
        }
        if client_id:
            headers["trakt-api-key"] = client_id
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self.api = ApiSession(base_url, headers=headers, timeout=10)

    def _get(self, path: str, what: str, params: Optional[Dict[str, Any]] = None, timeout: int = 10) -> List[Any]:
        try:
            response = call_with_backoff(
                self.api.get, path, what=f"Trakt {what}", params=params, timeout=timeout
            )
            data = response.json()
        except (ProviderError, ValueError) as e:
            log.error(f"Error fetching Trakt {what}: {e}")
            return []
        return data if isinstance(data, list) else []

    def list_trending(self, media_type: str, limit: int = 20) -> List[MediaItem]:
        if not self.client_id:
            log.warning("Trakt Client ID not configured, skipping Trakt fetch")
            return []
        rows = self._get(f"{media_type}s/trending", f"trending {media_type}s", params={"limit": limit})
        # trending wraps each entry: [{"watchers": 12, "movie": {...}}]
        items = [_media_item(row.get(media_type), media_type) for row in rows if isinstance(row, dict)]
        return [i for i in items if i][:limit]

    def list_popular(self, media_type: str, limit: int = 20) -> List[MediaItem]:
        if not self.client_id:
            log.warning("Trakt Client ID not configured, skipping Trakt fetch")
            return []
        rows = self._get(f"{media_type}s/popular", f"popular {media_type}s", params={"limit": limit})
        # popular returns the media objects directly
        items = [_media_item(row, media_type) for row in rows]
        return [i for i in items if i][:limit]

    def _list_entries(self, rows: List[Any]) -> List[MediaItem]:
        items = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            media_type = row.get("type")
            if media_type not in ("movie", "show"):
                log.debug(f"Skipping Trakt list entry of type {media_type!r}")
                continue
            item = _media_item(row.get(media_type), media_type)
            if item:
                items.append(item)
        return items

    def list_by_custom_list(self, owner: str, slug: str) -> List[MediaItem]:
        if not self.client_id:
            log.warning("Trakt Client ID not configured")
            return []
        rows = self._get(f"users/{owner}/lists/{slug}/items", f"list {owner}/{slug}", timeout=15)
        return self._list_entries(rows)

    def list_watchlist(self, owner: str) -> List[MediaItem]:
        if not self.client_id or not self.access_token:
            log.warning("Trakt authentication not configured for watchlist")
            return []
        rows = self._get(f"users/{owner}/watchlist", "watchlist", timeout=15)
        return self._list_entries(rows)
