import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")


class SettingsResponse(BaseModel):
    question: str
    glow: str
    instagram: str


class AdminSettingsPayload(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1, max_length=280)
    glow: Optional[str] = None

    @field_validator("question")
    @classmethod
    def _question_rules(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v2 = v.strip()
        if not v2:
            raise ValueError("question must not be blank")
        return v2

    @field_validator("glow")
    @classmethod
    def _glow_rules(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not _HEX_COLOR.fullmatch(v.strip()):
            raise ValueError("glow must be a hex color like #00ffff")
        return v.strip().lower()


class CandidateTally(BaseModel):
    id: int
    name: str
    tally: int


class TallyResponse(BaseModel):
    tally: List[CandidateTally]


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: int = Field(alias="candidateId")
    # Normalized by the ledger; anything unusable becomes 1.
    votes: Any = 1
    currency: Optional[str] = None
    success_url: Optional[str] = Field(default=None, alias="successUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")


class CheckoutResponse(BaseModel):
    id: str
    url: str
    amount_total: int
    currency: str
    votes: int


class VerifyResponse(BaseModel):
    ok: bool
    status: str
    candidate_id: Optional[int] = None
    votes: Optional[int] = None
    tally: Optional[int] = None


class WebhookResponse(BaseModel):
    received: bool = True
    type: str
    status: str
