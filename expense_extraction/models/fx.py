"""Currency conversion models."""

from typing import Optional

from pydantic import BaseModel, Field


class FxConversion(BaseModel):
    """A rate lookup, optionally applied to an amount."""

    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)
    rate: float = Field(..., gt=0)
    amount: Optional[float] = None
    result: Optional[float] = None
    provider: str
    cached: bool = False
