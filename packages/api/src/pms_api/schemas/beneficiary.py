# This project was developed with assistance from AI tools.
"""Beneficiary response schemas.

Output keys are camelCase. ``pii`` is left unset (and so omitted with
``response_model_exclude_unset``) when the caller may not decrypt.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from . import Pagination


class BeneficiaryResponse(BaseModel):
    """One beneficiary: base attributes, ciphertext envelopes, optional plaintext."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    pseudonym: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pii_enc: dict[str, dict[str, Any] | None]
    pii: dict[str, str | None] | None = None


class BeneficiaryListResponse(BaseModel):
    """Paginated list of beneficiaries."""

    data: list[BeneficiaryResponse]
    pagination: Pagination
