"""
Pydantic models for the Soundraw catalog endpoints.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sample(BaseModel):
    """A single audio sample from a search result."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    sample: str  # Source URL of the audio file
    bpm: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @property
    def url(self) -> str:
        return self.sample

    @property
    def bpm_label(self) -> str:
        if self.bpm is None:
            return ""
        bpm = int(self.bpm) if float(self.bpm).is_integer() else self.bpm
        return f"{bpm} BPM"


class SearchSamplesRequest(BaseModel):
    genres: List[str] = Field(default_factory=list)
    page: Optional[int] = None
    limit: Optional[int] = None

    def to_params(self) -> List[tuple[str, str]]:
        """
        Builds the query string pairs. Genres are sent as repeated ``genres[]``
        parameters; empty values are omitted.
        """
        params = [("genres[]", genre) for genre in self.genres]
        if self.page:
            params.append(("page", str(self.page)))
        if self.limit:
            params.append(("limit", str(self.limit)))
        return params


class SearchSamplesResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    samples: List[Sample] = Field(default_factory=list)


class GenresResponse(BaseModel):
    genres: dict[str, str] = Field(default_factory=dict)
    total_count: int = 0

    def display_names(self, keys: List[str]) -> List[str]:
        """Maps genre keys to display names, falling back to the key itself."""
        return [self.genres.get(key, key) for key in keys]
