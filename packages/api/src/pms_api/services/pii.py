# This project was developed with assistance from AI tools.
"""PII gate: shape beneficiary rows for output.

The ciphertext envelopes are always returned under ``piiEnc``; only the
plaintext ``pii`` object is gated. Whoever emits plaintext must also
write an audit entry and mark the response as non-cacheable (see
``middleware.pii.mark_pii_access``).
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from .audit import write_audit_log
from .crypto import decrypt_field

logger = logging.getLogger(__name__)

Decrypt = Callable[[dict | None], str | None]

# (attribute prefix on the model, output key)
PII_FIELDS: tuple[tuple[str, str], ...] = (
    ("first_name", "firstName"),
    ("last_name", "lastName"),
    ("dob", "dob"),
    ("national_id", "nationalId"),
    ("phone", "phone"),
    ("email", "email"),
    ("address", "address"),
    ("gender", "gender"),
    ("municipality", "municipality"),
    ("nationality", "nationality"),
)

PII_READ_ACTION = "BENEFICIARY_PII_READ"
PII_LIST_READ_ACTION = "BENEFICIARY_PII_LIST_READ"


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def shape_record(record: Any, can_decrypt: bool, decrypt: Decrypt = decrypt_field) -> dict:
    """Build the output dict for one beneficiary row.

    Raises:
        DecryptionError: propagated from ``decrypt``; never turned into null.
    """
    shaped = {
        "id": str(record.id),
        "pseudonym": record.pseudonym,
        "status": _plain(record.status),
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
        "piiEnc": {f"{key}Enc": getattr(record, f"{attr}_enc", None) for attr, key in PII_FIELDS},
    }
    if can_decrypt:
        pii = {}
        for attr, key in PII_FIELDS:
            envelope = getattr(record, f"{attr}_enc", None)
            pii[key] = None if envelope is None else decrypt(envelope)
        shaped["pii"] = pii
    return shaped


def shape_list(records: Iterable[Any], can_decrypt: bool, decrypt: Decrypt = decrypt_field) -> list[dict]:
    return [shape_record(r, can_decrypt, decrypt) for r in records]


async def audit_pii_read(session: AsyncSession, user_id: str, record: Any) -> None:
    """Record that ``user_id`` read one beneficiary's plaintext PII."""
    await write_audit_log(
        session,
        user_id=user_id,
        action=PII_READ_ACTION,
        description=f"Read PII for beneficiary '{record.pseudonym}'",
        details={"beneficiaryId": str(record.id), "fields": [key for _, key in PII_FIELDS]},
    )


async def audit_pii_list_read(
    session: AsyncSession,
    user_id: str,
    *,
    count: int,
    page: int | None = None,
    limit: int | None = None,
    source: str = "list",
) -> None:
    """Record a bulk plaintext read; describes count and paging, not rows."""
    await write_audit_log(
        session,
        user_id=user_id,
        action=PII_LIST_READ_ACTION,
        description=f"Read PII for {count} beneficiaries via {source}",
        details={"count": count, "page": page, "limit": limit},
    )
