"""Pydantic schemas for favorites."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from recite.poems.schemas import PoemSummary


class FavoriteRequest(BaseModel):
    poem_id: int = Field(..., ge=1)


class FavoriteResponse(BaseModel):
    id: int
    poem_id: int
    created_at: datetime
    poem: PoemSummary

    model_config = {"from_attributes": True}


class FavoriteStatus(BaseModel):
    poem_id: int
    is_favorite: bool


class ToggleResponse(FavoriteStatus):
    action: Literal["added", "removed"]
