from typing import Annotated

from fastapi import APIRouter, File, Form, Response, UploadFile
from pydantic import BaseModel

from paymail.core.modules.email_log.models import PayslipEmail
from paymail.errors import ValidationError
from paymail.web.deps import AppDep, AuthContextDep
from paymail.web.openapi import ErrorResponse

router = APIRouter(tags=["email"])


class SendPayslipResponse(BaseModel):
    success: bool
    message: str


@router.post(
    "/email/send-payslip",
    summary="Send payslip",
    description=(
        "Email a payslip attachment to a worker as the signed-in user. "
        "Every attempt is recorded in the email log."
    ),
    operation_id="sendPayslip",
    responses={
        200: {"description": "Email sent and logged"},
        400: {"model": ErrorResponse, "description": "No file uploaded"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        502: {"model": SendPayslipResponse, "description": "Mail service refused the email; attempt logged"},
    },
)
async def send_payslip(
    app: AppDep,
    context: AuthContextDep,
    response: Response,
    to: Annotated[str, Form()],
    subject: Annotated[str, Form()],
    worker_num: Annotated[str, Form(alias="workerNum")],
    worker_name: Annotated[str, Form(alias="workerName")],
    batch_id: Annotated[str, Form(alias="batchId")],
    batch_item_num: Annotated[str, Form(alias="batchItemNum")],
    batch_size: Annotated[int, Form(alias="batchSize")],
    html: Annotated[str, Form()] = "",
    file: Annotated[UploadFile | None, File()] = None,
) -> SendPayslipResponse:
    if file is None:
        raise ValidationError("No file uploaded")

    email = PayslipEmail(
        to=to,
        subject=subject,
        html=html,
        worker_num=worker_num,
        worker_name=worker_name,
        batch_id=batch_id,
        batch_item_num=batch_item_num,
        batch_size=batch_size,
        filename=file.filename or "payslip.pdf",
        content=await file.read(),
        content_type=file.content_type or "application/pdf",
    )
    entry = await app.send_payslip(context, email)
    if not entry.successful:
        response.status_code = 502
        return SendPayslipResponse(success=False, message="Failed to send email. Logged attempt.")
    return SendPayslipResponse(success=True, message="Email sent and logged successfully.")
