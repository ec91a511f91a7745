# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details error response schema."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Problem Details body returned by every error handler.

    See https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str = Field(default="about:blank", description="URI reference identifying the problem type.")
    title: str = Field(description="Short summary of the problem.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(default="", description="Explanation specific to this occurrence.")
    request_id: str = Field(default="", description="Correlation ID for tracing this request in logs.")
    instance: str = Field(default="", description="Path of the request that produced the problem.")
