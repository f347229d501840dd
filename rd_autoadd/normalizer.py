"""
Turn raw Torrentio streams into Candidate records.

A Torrentio stream title is multi-line, for example:

    Dune.Part.Two.2024.2160p.WEB-DL.DDP5.1.Atmos.DV.HDR.H.265-FLUX
    Dune.Part.Two.2024.2160p.WEB-DL.mkv
    👤 412 💾 21.4 GB ⚙️ TorrentGalaxy

The release name is the first line that is not the metadata line; the 💾
size marker can sit on any line.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Tuple

from rd_autoadd.errors import DataError
from rd_autoadd.models import Candidate

log = logging.getLogger(__name__)

SIZE_MARKER = "💾"
SEEDERS_MARKER = "👤"

SIZE_MULTIPLIERS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 ** 2,
    "GB": 1024 ** 3,
    "TB": 1024 ** 4,
}

_SIZE_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]*)")
_MARKED_SIZE_RE = re.compile(SIZE_MARKER + r"\s*([0-9]+(?:\.[0-9]+)?\s*[A-Za-z]*)")
_HASH_RE = re.compile(r"^[0-9a-f]{40}$")


def parse_size(size_str: str) -> int:
    """
    "7.5 GB" -> 7.5 * 1024**3 bytes. Binary multipliers. An unknown unit
    leaves the number as bytes; an unparseable string is 0.
    """
    m = _SIZE_RE.search(size_str or "")
    if not m:
        return 0
    value = float(m.group(1))
    unit = m.group(2).upper()
    return int(round(value * SIZE_MULTIPLIERS.get(unit, 1)))


def extract_title_and_size(raw_title: str) -> Tuple[str, int]:
    """Split a raw stream title into (release name, size in bytes)."""
    raw_title = raw_title or ""
    lines = [line.strip() for line in raw_title.splitlines() if line.strip()]

    marker_index = -1
    size_text = ""
    for i, line in enumerate(lines):
        m = _MARKED_SIZE_RE.search(line)
        if m:
            marker_index = i
            size_text = m.group(1)
            break

    if marker_index < 0:
        return raw_title.strip(), 0

    for i, line in enumerate(lines):
        if i != marker_index:
            return line, parse_size(size_text)

    # Single line carrying both the name and the metadata
    name = lines[marker_index].split(SEEDERS_MARKER)[0].split(SIZE_MARKER)[0].strip()
    return (name or raw_title.strip()), parse_size(size_text)


def normalize_hash(value: Any) -> str:
    info_hash = (value or "").strip().lower() if isinstance(value, str) else ""
    if not info_hash:
        raise DataError("missing info hash")
    if not _HASH_RE.match(info_hash):
        raise DataError(f"malformed info hash '{info_hash[:48]}'")
    return info_hash


def normalize_stream(stream: Dict[str, Any]) -> Candidate:
    if not isinstance(stream, dict):
        raise DataError(f"stream entry is {type(stream).__name__}, not an object")
    info_hash = normalize_hash(stream.get("infoHash"))
    raw_title = stream.get("title")
    if not isinstance(raw_title, str):
        raw_title = ""
    title, size_bytes = extract_title_and_size(raw_title)
    return Candidate(title=title, size_bytes=size_bytes, content_hash=info_hash)


def normalize_streams(streams: Iterable[Dict[str, Any]]) -> List[Candidate]:
    """Build candidates, dropping malformed entries and repeated hashes."""
    candidates: List[Candidate] = []
    seen = set()
    dropped = 0
    for stream in streams or []:
        try:
            candidate = normalize_stream(stream)
        except DataError as e:
            dropped += 1
            log.debug(f"    Dropping release entry: {e}")
            continue
        if candidate.content_hash in seen:
            continue
        seen.add(candidate.content_hash)
        candidates.append(candidate)
    if dropped:
        log.debug(f"    Dropped {dropped} malformed release entries")
    return candidates
