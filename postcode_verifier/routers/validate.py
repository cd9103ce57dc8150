"""
Address validation endpoints - POST /v1/validate, GET /v1/verify-logs
"""

import logging

from fastapi import APIRouter, Depends, Query
from prometheus_client import Counter, Histogram

from postcode_verifier.auth import User, get_current_user
from postcode_verifier.database import Database, get_db
from postcode_verifier.models import AddressQuery, ValidationResult, VerifyLogPage
from postcode_verifier.services.auspost import AusPostClient, get_auspost_client
from postcode_verifier.services.validator import validate_address
from postcode_verifier.services.verify_log import MAX_PAGE_SIZE, list_verify_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["validation"])

# Prometheus metrics
validations_total = Counter(
    'address_validations_total',
    'Address validations performed',
    ['outcome']
)
validation_duration = Histogram(
    'address_validation_seconds',
    'Time spent validating an address, AusPost lookups included'
)


@router.post("/validate", response_model=ValidationResult)
async def validate(
    query: AddressQuery,
    current_user: User = Depends(get_current_user),
    db: Database = Depends(get_db),
    client: AusPostClient = Depends(get_auspost_client)
):
    """
    Validate an Australian address against AusPost.

    **Request Body:**
    - `postcode`: 3 or 4 digits
    - `suburb`: At least 2 characters
    - `state`: One of NSW, VIC, QLD, SA, WA, TAS, ACT, NT

    **Returns:**
    - `success`: Whether suburb, postcode and state agree
    - `message`: Human readable outcome
    - `latitude` / `longitude`: Location of the matched locality on success

    Malformed input is rejected with 400 before AusPost is called.
    Every other attempt is recorded in the verify log.
    """
    with validation_duration.time():
        result = await validate_address(query, current_user.username, db, client)

    validations_total.labels(outcome="valid" if result.success else "invalid").inc()

    return result


@router.get("/verify-logs", response_model=VerifyLogPage)
async def list_logs(
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Database = Depends(get_db)
):
    """
    List the current user's validation attempts, newest first.

    **Query Parameters:**
    - `limit`: Maximum number of entries (default: 50, max: 500)
    - `offset`: Number of entries to skip (for pagination)
    """
    logs = await list_verify_logs(current_user.username, db, limit=limit, offset=offset)

    return VerifyLogPage(logs=logs, count=len(logs), limit=limit, offset=offset)
