# This project was developed with assistance from AI tools.
"""Shared schema components."""

from pydantic import BaseModel


class Pagination(BaseModel):
    """Page-based pagination metadata for list responses."""

    total: int
    page: int
    limit: int
    has_more: bool
