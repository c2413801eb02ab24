"""
Maps rejected campaign operations to HTTP responses.

Body shape: {"detail": <message>, "error_kind": <kind>} plus, for bracket
set failures, the structured validation result.
"""

import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from campaigns.errors import (
    CampaignNotFound,
    CampaignRuleError,
    InvalidBracketSet,
    PledgeAccessDenied,
    PledgeNotFound,
)
from campaigns.validation import BracketValidationResult

logger = structlog.get_logger()

STATUS_BY_ERROR: dict[type[CampaignRuleError], int] = {
    CampaignNotFound: 404,
    PledgeNotFound: 404,
    PledgeAccessDenied: 403,
    InvalidBracketSet: 422,
}
DEFAULT_RULE_STATUS = 409


def validation_payload(result: BracketValidationResult) -> dict:
    return {
        "valid": result.valid,
        "error_kind": result.error_kind.value if result.error_kind else None,
        "offending_indices": list(result.offending_indices),
        "message": result.message,
    }


def status_for(exc: CampaignRuleError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return DEFAULT_RULE_STATUS


async def campaign_rule_error_handler(request: Request, exc: CampaignRuleError) -> JSONResponse:
    status_code = status_for(exc)
    body: dict = {"detail": exc.message, "error_kind": exc.kind}
    if isinstance(exc, InvalidBracketSet):
        body["validation"] = validation_payload(exc.result)
    if status_code == DEFAULT_RULE_STATUS:
        logger.warning("api.operation_rejected", path=request.url.path, error_kind=exc.kind, detail=exc.message)
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CampaignRuleError, campaign_rule_error_handler)
