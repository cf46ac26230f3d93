"""
Schemas for the external-facing API routes.
"""

from pydantic import BaseModel, Field
from typing import Optional


class UploadSignatureResponse(BaseModel):
    signature: str
    api_key: str
    timestamp: int
    folder: str


class ChangePasswordRequest(BaseModel):
    # Optional so a missing field yields the 400 message instead of a 422
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ChangePasswordResponse(BaseModel):
    success: bool
    message: str


class ImageCheckRequest(BaseModel):
    content_type: Optional[str] = None
    size: int = Field(..., ge=0, description="Bytes")
