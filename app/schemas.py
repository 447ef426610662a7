"""Pydantic schemas for request/response validation."""
from typing import Optional
from pydantic import BaseModel


# ============================================================================
# Pick Schemas
# ============================================================================

class SizeGrind(BaseModel):
    size: str
    grind: str

    @property
    def key(self) -> str:
        """Key used in the customer's last-pick map."""
        return f"{self.size}|{self.grind}"


class Candidate(BaseModel):
    product_id: str
    product_title: str
    product_handle: str
    variant_id: Optional[str] = None


class PickSummary(BaseModel):
    product_title: str
    product_handle: str
    size: str
    grind: str


# ============================================================================
# Roaster's Choice Endpoint Schemas
# ============================================================================

class PickResponse(BaseModel):
    success: bool = True
    order: str
    pick: PickSummary


class NoteResponse(BaseModel):
    success: bool = True
    mode: str = "note"
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
