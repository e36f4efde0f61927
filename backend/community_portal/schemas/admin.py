"""Admin verification schemas."""
from typing import Literal

from pydantic import BaseModel


class VerificationDecision(BaseModel):
    user_id: str
    action: Literal["APPROVE", "REJECT"]
    rejection_reason: str | None = None
