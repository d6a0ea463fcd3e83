"""
Keeps the samples of the most recent search so later commands can refer to
them by position or id.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from soundraw_cli.models.sample import Sample

log = logging.getLogger(__name__)


class SearchResult(BaseModel):
    genres: list[str] = Field(default_factory=list)
    genre_names: list[str] = Field(default_factory=list)
    samples: list[Sample] = Field(default_factory=list)

    @property
    def title(self) -> str:
        names = ", ".join(self.genre_names or self.genres)
        return f"Search Samples: {names}" if names else "Search Samples"

    def find(self, ref: str) -> Sample | None:
        """Looks a sample up by 1-based position or by id."""
        for sample in self.samples:
            if sample.id == ref:
                return sample
        if ref.isdigit():
            index = int(ref)
            if 1 <= index <= len(self.samples):
                return self.samples[index - 1]
        return None


class ResultStore:
    def __init__(self, path: Path):
        self.path = path

    def save(self, result: SearchResult) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            log.warning(f"Could not save search results: {e}")

    def load(self) -> SearchResult | None:
        if not self.path.is_file():
            return None
        try:
            return SearchResult.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            log.debug(f"Ignoring unreadable search results at {self.path}: {e}")
            return None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
