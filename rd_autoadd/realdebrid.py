"""
Real-Debrid REST client (https://api.real-debrid.com/rest/1.0).

Thin wrapper: every method performs a single request and raises a
ProviderError subclass on failure. Retries and dry-run handling belong to
the prober and the reconciler.
"""

import logging
from typing import Any, Dict, List, Sequence

from rd_autoadd.errors import ProviderError
from rd_autoadd.http import ApiSession
from rd_autoadd.models import CommittedItem

log = logging.getLogger(__name__)

RD_API_URL = "https://api.real-debrid.com/rest/1.0"
LIST_PAGE_SIZE = 100
MAX_LIST_PAGES = 500


def build_magnet(info_hash: str) -> str:
    return f"magnet:?xt=urn:btih:{info_hash}"


def is_cached(entry: Any) -> bool:
    """
    instantAvailability replies {hash: {"rd": [{file_id: {...}}, ...]}} for a
    cached hash and {hash: []} or {hash: {}} otherwise.
    """
    if isinstance(entry, dict):
        return any(bool(variants) for variants in entry.values())
    return False


class RealDebridClient:
    def __init__(self, api_key: str, base_url: str = RD_API_URL):
        self.api = ApiSession(base_url, headers={"Authorization": f"Bearer {api_key}"})

    def get_user(self) -> Dict[str, Any]:
        return self.api.get("user", timeout=10).json()

    def probe_availability(self, hashes: Sequence[str]) -> Dict[str, bool]:
        """One instantAvailability request for a batch of hashes."""
        if not hashes:
            return {}
        response = self.api.get(f"torrents/instantAvailability/{'/'.join(hashes)}")
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"instantAvailability returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            data = {}
        replies = {str(k).lower(): v for k, v in data.items()}
        return {h: is_cached(replies.get(h)) for h in hashes}

    def add_magnet(self, info_hash: str) -> str:
        """Register a hash; returns the torrent id."""
        response = self.api.post("torrents/addMagnet", data={"magnet": build_magnet(info_hash)})
        try:
            torrent_id = response.json().get("id")
        except (ValueError, AttributeError):
            torrent_id = None
        if not torrent_id:
            raise ProviderError(f"addMagnet returned no torrent id (HTTP {response.status_code})")
        return str(torrent_id)

    def select_all_files(self, torrent_id: str) -> None:
        self.api.post(f"torrents/selectFiles/{torrent_id}", data={"files": "all"}, timeout=10)

    def delete_torrent(self, torrent_id: str) -> bool:
        """Delete a torrent. A 404 means it is already gone, which is fine."""
        try:
            self.api.delete(f"torrents/delete/{torrent_id}", timeout=10)
        except ProviderError as e:
            if e.status == 404:
                log.info(f"Torrent {torrent_id} already deleted")
                return True
            raise
        return True

    def list_torrents(self) -> List[CommittedItem]:
        items: List[CommittedItem] = []
        previous_ids: List[str] = []
        for page in range(1, MAX_LIST_PAGES + 1):
            response = self.api.get("torrents", params={"page": page, "limit": LIST_PAGE_SIZE})
            # 204 No Content past the last page
            if response.status_code == 204 or not response.content:
                break
            try:
                rows = response.json()
            except ValueError as e:
                raise ProviderError(f"torrents list returned invalid JSON: {e}") from e
            if not isinstance(rows, list) or not rows:
                break
            page_ids = [str(row.get("id")) for row in rows if isinstance(row, dict)]
            if page_ids == previous_ids:
                log.warning(f"torrents page {page} repeats page {page - 1}, stopping pagination")
                break
            previous_ids = page_ids
            for row in rows:
                if not isinstance(row, dict) or not row.get("id"):
                    continue
                items.append(CommittedItem(
                    commitment_id=str(row["id"]),
                    filename=str(row.get("filename") or ""),
                    size_bytes=int(row.get("bytes") or 0),
                ))
            if len(rows) < LIST_PAGE_SIZE:
                break
        else:
            log.warning(f"Stopped listing torrents after {MAX_LIST_PAGES} pages")
        return items
