from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, Literal


class ThresholdsIn(BaseModel):
    temp_min: float
    temp_max: float
    humidity_max: float
    gas_max: float


class SendSmsRequest(BaseModel):
    message: str = Field(min_length=1, max_length=1000)
    numbers: Optional[str] = None   # falls back to the configured operator numbers


class SendSmsResponse(BaseModel):
    success: bool
    message: str
    request_id: Optional[str] = None


TimeRange = Literal["1h", "6h", "24h"]
