# This project was developed with assistance from AI tools.
"""Service-delivery metric response schemas."""

from pydantic import BaseModel


class DeliveryCountResponse(BaseModel):
    """Total deliveries visible to the caller."""

    total: int


class DeliveryGroupsResponse(BaseModel):
    """Delivery counts per group key, largest first.

    Each item holds the group key (``staffUserId``, ``beneficiaryId`` or
    ``serviceId``) and ``count``.
    """

    items: list[dict[str, str | int | None]]
