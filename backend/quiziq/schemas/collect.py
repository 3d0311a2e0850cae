"""
Collector payload schema.

Validated with strict types: the payload comes straight from third-party
pages, so nothing is coerced.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_URL_LENGTH = 1024

# Column ranges: ts is BIGINT, sw and sh are INTEGER
MAX_BIGINT = 2**63 - 1
MAX_INT = 2**31 - 1


class CollectEvent(BaseModel):
    """One event posted by the embedded snippet."""

    model_config = ConfigDict(strict=True, extra="ignore")

    tracker_id: str
    ev: str
    ts: int = Field(ge=-MAX_BIGINT - 1, le=MAX_BIGINT)
    sid: str
    page_url: str = Field(max_length=MAX_URL_LENGTH)
    path: str = Field(max_length=MAX_URL_LENGTH)
    ref: Optional[str] = Field(default=None, max_length=MAX_URL_LENGTH)

    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None

    sw: Optional[int] = Field(default=None, ge=-MAX_INT - 1, le=MAX_INT)
    sh: Optional[int] = Field(default=None, ge=-MAX_INT - 1, le=MAX_INT)

    quiz_id: Optional[str] = None
    question_id: Optional[str] = None
    answer_id: Optional[str] = None

    extra: Optional[dict[str, Any]] = None

    @property
    def lead_payload(self) -> Optional[dict[str, Any]]:
        """The nested ``extra.lead`` object, if there is one."""
        if not self.extra:
            return None
        lead = self.extra.get("lead")
        return lead if isinstance(lead, dict) else None


class CollectResponse(BaseModel):
    success: bool = True
