from typing import Annotated

from fastapi import APIRouter, Query

from paymail.core.modules.email_log.models import EmailLog
from paymail.web.deps import AppDep, AuthContextDep
from paymail.web.openapi import ErrorResponse

router = APIRouter(tags=["logs"])


@router.get(
    "/logs/get-payslip-logs",
    summary="List payslip email logs",
    description="Most recent payslip send attempts first.",
    operation_id="getPayslipLogs",
    responses={
        200: {"description": "Email log entries"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_payslip_logs(
    app: AppDep,
    context: AuthContextDep,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum number of entries")] = 100,
) -> list[EmailLog]:
    return await app.get_email_logs(context, limit)
