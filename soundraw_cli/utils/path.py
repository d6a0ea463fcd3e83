"""
Utilities for deriving stable cache keys and on-disk paths for audio samples.
"""

import hashlib
import mimetypes
import re
import tempfile
from pathlib import Path
from typing import NamedTuple, Optional
from urllib.parse import urlparse

from pathvalidate import sanitize_filename

DEFAULT_EXTENSION = "m4a"
HASH_LENGTH = 10
SCRATCH_DIR = Path(tempfile.gettempdir())

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9 _-]")
_WHITESPACE = re.compile(r"\s+")
_URL_EXTENSION = re.compile(r"\.([A-Za-z0-9]{1,5})$")

# Content types Soundraw serves that mimetypes does not map consistently
_CONTENT_TYPE_EXTENSIONS = {
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/aac": "aac",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/flac": "flac",
    "audio/ogg": "ogg",
}


class CacheKey(NamedTuple):
    """Filesystem-safe name stem plus a short hash of the source URL."""

    slug: str
    url_hash: str

    @property
    def stem(self) -> str:
        return f"{self.slug}-{self.url_hash}"


def sanitize_name(name: str) -> str:
    """
    Strips everything outside letters, digits, space, dash and underscore and
    collapses whitespace. Falls back to 'sample' if nothing is left.
    """
    cleaned = _UNSAFE_CHARS.sub("", _WHITESPACE.sub(" ", name))
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = sanitize_filename(cleaned, platform="auto")
    return cleaned or "sample"


def url_hash(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def cache_key(url: str, name: str) -> CacheKey:
    return CacheKey(sanitize_name(name), url_hash(url))


def extension_from_url(url: str) -> Optional[str]:
    """Returns the lowercase suffix of the URL path, ignoring query and fragment."""
    match = _URL_EXTENSION.search(urlparse(url).path)
    return match.group(1).lower() if match else None


def extension_for_content_type(content_type: Optional[str]) -> Optional[str]:
    """Maps a response Content-Type header to a file extension."""
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime in _CONTENT_TYPE_EXTENSIONS:
        return _CONTENT_TYPE_EXTENSIONS[mime]
    guessed = mimetypes.guess_extension(mime)
    return guessed.lstrip(".") if guessed else None


def content_type_for_path(path: Path) -> str:
    ext = path.suffix.lstrip(".").lower()
    for mime, mapped in _CONTENT_TYPE_EXTENSIONS.items():
        if mapped == ext:
            return mime
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def resolve_path(
    url: str,
    name: str,
    extension: Optional[str] = None,
    base_dir: Optional[Path] = None,
) -> Path:
    """
    Computes where a sample lives on disk. Pure: performs no I/O.

    Args:
        url: Source URL, hashed to disambiguate samples that share a name.
        name: Human-readable sample name.
        extension: Explicit extension; otherwise taken from the URL path, then
            DEFAULT_EXTENSION.
        base_dir: Destination directory, defaults to the scratch directory.
    """
    ext = (extension or "").lstrip(".").lower()
    if not ext:
        ext = extension_from_url(url) or DEFAULT_EXTENSION
    directory = Path(base_dir) if base_dir is not None else SCRATCH_DIR
    return directory / f"{cache_key(url, name).stem}.{ext}"


def is_resolver_filename(filename: str) -> bool:
    """True for names produced by resolve_path (used to scope cache cleanup)."""
    return re.fullmatch(
        rf"[A-Za-z0-9 _-]+-[0-9a-f]{{{HASH_LENGTH}}}\.[A-Za-z0-9]{{1,5}}", filename
    ) is not None


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
