from pydantic import BaseModel, Field
from typing import Any, Optional
import uuid


def _rid():
    return uuid.uuid4().hex


class SuccessResponse(BaseModel):
    """Uniform envelope wrapping every successful result: success, message, data, meta and request_id"""
    success: Optional[bool] = Field(default=True)
    message: Optional[str] = None
    data: Optional[Any] = None
    meta: Optional[Any] = None
    request_id: str = Field(default_factory=_rid)
