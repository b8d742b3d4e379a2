"""
Error response models for the REST facade.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ApiError


class ErrorDetail(BaseModel):
    """A single code/message pair of an error response."""

    code: str = Field(..., description="Stable machine readable error code")
    message: str = Field(..., description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Standard error response model.

    Every failed request is answered with this shape, whatever went wrong
    and however many errors were collected.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "errors": [
                    {
                        "code": "aftership_api_no_route",
                        "message": "No route was found matching the URL and request method",
                    }
                ]
            }
        }
    )

    errors: List[ErrorDetail] = Field(default_factory=list)

    @classmethod
    def from_api_error(cls, error: ApiError) -> "ErrorResponse":
        """Create an ErrorResponse from an ApiError.

        Args:
            error: The error, possibly carrying several code/message pairs

        Returns:
            ErrorResponse with one detail per code/message pair
        """
        return cls(errors=[ErrorDetail(code=code, message=message) for code, message in error])

    def to_wire(self) -> Dict[str, Any]:
        """Dump to the plain dict handed to a body codec."""
        return self.model_dump()
