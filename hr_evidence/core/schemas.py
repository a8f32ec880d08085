from typing import Any, Dict, List, Optional
from pydantic import BaseModel

class ErrorItem(BaseModel):
    msg: str
    code: Optional[str] = None
    field: Optional[str] = None

class ApiResponse(BaseModel):
    """Envelope every error response leaves the API in."""
    success: bool
    errors: List[ErrorItem] = []

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def fail(cls, message: str, code: Optional[str] = None) -> "ApiResponse":
        return cls(success=False, errors=[ErrorItem(msg=message, code=code)])

    @classmethod
    def invalid(cls, field_errors: List[Dict[str, str]]) -> "ApiResponse":
        """Request validation failures, one item per offending field."""
        return cls(success=False, errors=[ErrorItem(**item) for item in field_errors])
