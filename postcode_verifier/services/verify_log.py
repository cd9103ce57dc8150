"""
Verify log storage.

Every validation attempt is appended to ``verify_logs``. Rows are never
updated or deleted.
"""

import logging
from typing import List

from postcode_verifier.database import Database
from postcode_verifier.models import VerifyLog, VerifyLogEntry

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


async def write_verify_log(log: VerifyLog, db: Database) -> None:
    """
    Append a validation attempt to the log.

    A failed write is logged and dropped so that it never changes the
    answer returned to the user.
    """
    try:
        await db.execute(
            """
            INSERT INTO verify_logs (
                user_id, postcode, suburb, state, success, error, ts, lat, lng
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            """,
            log.user_id,
            log.postcode,
            log.suburb,
            log.state,
            log.success,
            log.error,
            log.ts,
            log.lat,
            log.lng
        )
    except Exception as e:
        logger.error(f"Failed to write verify log for {log.user_id}: {e}")
        return

    logger.debug(f"Verify log written: user={log.user_id}, success={log.success}")


async def list_verify_logs(
    user_id: str,
    db: Database,
    limit: int = 50,
    offset: int = 0
) -> List[VerifyLogEntry]:
    """
    Fetch a user's validation history, newest first.

    Args:
        user_id: Normalized username
        db: Database connection
        limit: Page size, clamped to 1..MAX_PAGE_SIZE
        offset: Number of entries to skip
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)

    rows = await db.fetch(
        """
        SELECT id, user_id, postcode, suburb, state, success, error, ts, lat, lng
        FROM verify_logs
        WHERE user_id = $1
        ORDER BY ts DESC, id DESC
        LIMIT $2 OFFSET $3
        """,
        user_id,
        limit,
        offset
    )

    return [VerifyLogEntry(**dict(row)) for row in rows]
