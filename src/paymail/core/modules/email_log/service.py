from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from paymail.core.core import Service
from paymail.core.db import store_errors
from paymail.core.modules.email_log.models import EmailLog, PayslipEmail
from paymail.core.modules.session.models import AuthContext
from paymail.errors import MailSendError, StoreError
from paymail.utils import now

logger = structlog.get_logger(__name__)


class EmailLogService(Service):
    """Sends payslip emails and records every attempt."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("email_logs")

    async def on_start(self) -> None:
        with store_errors("create_index"):
            await self._collection.create_index([("sent_at", -1)])
            await self._collection.create_index([("batch_id", 1)])

    async def send_payslip(self, context: AuthContext, email: PayslipEmail) -> EmailLog:
        """Send one payslip via Graph and log the attempt.

        A failed send is not raised: it is reported through EmailLog.successful.
        A failed log write is logged and does not change the outcome.
        """
        successful = True
        try:
            await self.core.mail.send_mail_with_attachment(
                context.access_token,
                to=email.to,
                subject=email.subject,
                html=email.html,
                attachment=email.content,
                filename=email.filename,
                content_type=email.content_type,
            )
        except MailSendError:
            successful = False

        sent_at = now()
        local = sent_at.astimezone()
        entry = EmailLog(
            sender_name=context.name,
            sender_email=context.email,
            recipient_name=email.worker_name,
            recipient_email=email.to,
            recipient_worker_num=email.worker_num,
            recipient_payslip_file=email.filename,
            batch_id=email.batch_id,
            batch_item_num=email.batch_item_num,
            batch_size=email.batch_size,
            date=local.strftime("%Y-%m-%d"),
            time_sent=local.strftime("%H:%M:%S"),
            subject=email.subject,
            successful=successful,
            sent_at=sent_at,
        )
        try:
            await self.create_log(entry)
        except StoreError:
            logger.exception("email_log_write_failed", batch_id=email.batch_id, batch_item_num=email.batch_item_num)

        logger.info(
            "payslip_sent" if successful else "payslip_send_failed",
            batch_id=email.batch_id,
            batch_item_num=email.batch_item_num,
        )
        return entry

    async def create_log(self, entry: EmailLog) -> None:
        with store_errors("create_email_log"):
            await self._collection.insert_one(entry.to_mongo())

    async def get_logs(self, limit: int = 100) -> list[EmailLog]:
        """Most recent log entries first."""
        with store_errors("list_email_logs"):
            cursor = self._collection.find().sort("sent_at", -1).limit(limit)
            return await EmailLog.list_cursor(cursor)
