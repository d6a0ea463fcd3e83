"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as the stored credentials and the
catalog entities returned by the Soundraw API.
"""

from .config import AppSettings, SoundrawConfig
from .sample import GenresResponse, Sample, SearchSamplesRequest, SearchSamplesResponse

__all__ = [
    "AppSettings",
    "GenresResponse",
    "Sample",
    "SearchSamplesRequest",
    "SearchSamplesResponse",
    "SoundrawConfig",
]
