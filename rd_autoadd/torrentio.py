"""Torrentio release index client."""

import logging
from typing import Any, Dict, List

from rd_autoadd.errors import ProviderBlockedError, ProviderError
from rd_autoadd.http import ApiSession, call_with_backoff

log = logging.getLogger(__name__)

TORRENTIO_URL = "https://torrentio.strem.fun"


def content_type(media_type: str) -> str:
    return "series" if media_type == "show" else "movie"


class TorrentioClient:
    def __init__(
        self,
        sort_by: str = "qualitysize",
        quality_filter: str = "other,scr,cam,unknown",
        base_url: str = TORRENTIO_URL,
    ):
        self.sort_by = sort_by
        self.quality_filter = quality_filter
        self.api = ApiSession(base_url, timeout=15)

    def build_path(self, external_id: str, media_type: str) -> str:
        """
        Configured path, e.g. sort=qualitysize%7Cqualityfilter=scr,cam/stream/movie/tt123.json.
        Options are joined with an encoded "|"; the quality filter lists the
        qualities Torrentio must leave out.
        """
        options = []
        if self.sort_by:
            options.append(f"sort={self.sort_by}")
        if self.quality_filter:
            options.append(f"qualityfilter={self.quality_filter}")
        stream_path = f"stream/{content_type(media_type)}/{external_id}.json"
        if not options:
            return stream_path
        return f"{'%7C'.join(options)}/{stream_path}"

    def _fetch(self, path: str) -> List[Dict[str, Any]]:
        response = self.api.get(path)
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Torrentio returned invalid JSON: {e}") from e
        streams = data.get("streams") if isinstance(data, dict) else None
        if not isinstance(streams, list):
            return []
        return streams

    def _fetch_with_backoff(self, path: str, external_id: str) -> List[Dict[str, Any]]:
        return call_with_backoff(self._fetch, path, what=f"Torrentio search {external_id}")

    def search(self, external_id: str, media_type: str) -> List[Dict[str, Any]]:
        """Raw streams for a title. Errors are logged and yield []."""
        path = self.build_path(external_id, media_type)
        try:
            try:
                return self._fetch_with_backoff(path, external_id)
            except ProviderBlockedError:
                # Cloudflare tends to block the configured URL before the plain one
                log.info(f"Torrentio blocked configured URL, trying plain URL for {external_id}")
                plain_path = f"stream/{content_type(media_type)}/{external_id}.json"
                return self._fetch_with_backoff(plain_path, external_id)
        except ProviderError as e:
            log.error(f"Error searching Torrentio for {external_id}: {e}")
            return []
