"""
Report export request schema.
"""
from typing import Optional

from pydantic import Field, field_validator

from quiziq.schemas.stats import StatsQuery

REPORT_SECTIONS = ("overview", "top-pages", "dropoff", "utm", "leads")
DEFAULT_SECTIONS = ["overview", "top-pages", "utm", "leads"]


class ExportRequest(StatsQuery):
    """Stats filter plus which sections to render and the date locale."""

    sections: list[str] = Field(default_factory=lambda: list(DEFAULT_SECTIONS))
    locale: str = Field("pt", min_length=2, max_length=35)
    quiz_id: Optional[str] = None

    @field_validator("sections")
    @classmethod
    def known_sections(cls, value: list[str]) -> list[str]:
        unknown = [section for section in value if section not in REPORT_SECTIONS]
        if unknown:
            raise ValueError(f"Unknown sections: {', '.join(unknown)}")
        return value
