"""
Action result schema.

Every management action answers with a success/message pair instead of
raising, so the caller can show the message as-is.
"""

from pydantic import BaseModel, Field
from typing import Any, Optional


class ActionResult(BaseModel):
    success: bool = Field(..., description="Whether the action was applied")
    message: Optional[str] = Field(default=None, description="Human readable outcome or error")
    error_code: Optional[str] = Field(default=None, description="Application error code on failure")
    data: Optional[Any] = Field(default=None, description="Action payload, if any")

    @classmethod
    def ok(cls, message: Optional[str] = None, data: Any = None) -> "ActionResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error_code: Optional[str] = None) -> "ActionResult":
        return cls(success=False, message=message, error_code=error_code)
