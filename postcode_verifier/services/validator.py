"""
Address validation service.

Cross-checks a postcode, suburb and state against AusPost in two lookups:

1. Search by suburb within the state. No hits means the suburb does not
   exist there.
2. Search by postcode within the state and look for a locality whose name
   and state match the request. No match means the postcode belongs to a
   different suburb.

Each attempt that reaches AusPost is written to the verify log.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from postcode_verifier.database import Database
from postcode_verifier.models import AddressQuery, ValidationResult, VerifyLog
from postcode_verifier.services.auspost import AusPostClient, AusPostError, Locality
from postcode_verifier.services.verify_log import write_verify_log

logger = logging.getLogger(__name__)

VALID_MESSAGE = "The postcode, suburb, and state input are valid."
FALLBACK_ERROR = "Validation error"


def normalize(value: str) -> str:
    return value.strip().upper()


def find_match(localities: List[Locality], suburb: str, state: str) -> Optional[Locality]:
    """Return the first locality named ``suburb`` in ``state``, if any."""
    suburb = normalize(suburb)
    state = normalize(state)
    for locality in localities:
        if normalize(locality.location) == suburb and normalize(locality.state) == state:
            return locality
    return None


async def validate_address(
    query: AddressQuery,
    user_id: str,
    db: Database,
    client: AusPostClient
) -> ValidationResult:
    """
    Validate an address and record the attempt.

    Args:
        query: Already trimmed and format-checked address
        user_id: Normalized username of the caller
        db: Database connection for the verify log
        client: AusPost API client

    Returns:
        ValidationResult; upstream failures are reported as unsuccessful
        results rather than raised
    """
    suburb = normalize(query.suburb)
    state = query.state
    match: Optional[Locality] = None

    try:
        suburb_hits = await client.search(suburb, state)
        if not suburb_hits:
            error = f"The suburb {query.suburb} does not exist in the state {state}."
        else:
            postcode_hits = await client.search(query.postcode, state)
            match = find_match(postcode_hits, suburb, state)
            if match is None:
                error = f"The postcode {query.postcode} does not match the suburb {query.suburb}."
            else:
                error = None
    except AusPostError as e:
        error = str(e) or FALLBACK_ERROR
    except Exception:
        logger.exception(f"Unexpected error validating address for {user_id}")
        match = None
        error = FALLBACK_ERROR

    log = VerifyLog(
        user_id=user_id,
        postcode=query.postcode,
        suburb=query.suburb,
        state=state,
        success=match is not None,
        error=error,
        ts=datetime.now(timezone.utc),
        lat=match.latitude if match else None,
        lng=match.longitude if match else None
    )
    await write_verify_log(log, db)

    if match is None:
        logger.info(f"Address rejected for {user_id}: {error}")
        return ValidationResult(success=False, message=error)

    logger.info(f"Address validated for {user_id}: {query.postcode} {suburb} {state}")
    return ValidationResult(
        success=True,
        message=VALID_MESSAGE,
        latitude=match.latitude,
        longitude=match.longitude
    )
