from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tsupport.api.deps import get_access_gate
from tsupport.common.code import ErrCodeError, handle_auth_error
from tsupport.core.access import AccessGate

router = APIRouter(tags=["access"])


class ValidateRequest(BaseModel):
    customer_id: str


class ValidateResponse(BaseModel):
    valid: bool


@router.post("/validate", response_model=ValidateResponse)
async def validate_customer_id(
    body: ValidateRequest,
    access_gate: AccessGate = Depends(get_access_gate),
) -> ValidateResponse:
    """Check a customer id against the allow-list before a chat is started."""
    try:
        return ValidateResponse(valid=await access_gate.validate(body.customer_id))
    except ErrCodeError as e:
        raise handle_auth_error(e)
