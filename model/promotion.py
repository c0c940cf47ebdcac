# model/promotion.py
from typing import Literal
from pydantic import BaseModel, Field
from model.client import DocumentSlot

SlotPromotionState = Literal["updated", "missing", "failed", "skipped"]


class SlotPromotion(BaseModel):
    status: SlotPromotionState
    path: str | None = None
    error: str | None = None


class PromotionResult(BaseModel):
    clientId: str
    stagingId: str
    allFilesUpdated: bool = True
    relocation: Literal["rename", "copy", "none"] = "none"
    perSlotStatus: dict[DocumentSlot, SlotPromotion] = Field(default_factory=dict)
