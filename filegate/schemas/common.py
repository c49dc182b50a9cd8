"""
Common/shared Pydantic schemas.
"""

from pydantic import BaseModel, ConfigDict


# Base configuration for all schemas
class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


# Standard response wrappers
class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class ErrorBody(BaseModel):
    """Machine-readable error."""
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Standardized error envelope."""
    error: ErrorBody
