from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import get_current_user_id
from ..schemas import ValidateStringIn, ValidateStringOut
from ..utils import is_blank

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/validation",
    tags=["validation"],
)


# PUBLIC_INTERFACE
@router.post(
    "/empty-string",
    response_model=ValidateStringOut,
    summary="Validate Non-Empty String",
    description=(
        "Check that `inputString` is not blank. Returns a structured result "
        "rather than an error for blank input."
    ),
    responses={
        200: {"description": "Validation performed"},
        400: {"description": "inputString missing or not a string"},
        401: {"description": "Caller not identified"},
    },
)
def validate_empty_string(
    payload: ValidateStringIn,
    user_id: str = Depends(get_current_user_id),
) -> ValidateStringOut:
    logger.debug("validate_empty_string called user_id=%s", user_id)
    value = payload.input_string
    if not isinstance(value, str) or value == "":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid input: string required")

    if is_blank(value):
        return ValidateStringOut(success=False, message="Input string cannot be empty.")
    return ValidateStringOut(success=True, message="Input string is valid.")
