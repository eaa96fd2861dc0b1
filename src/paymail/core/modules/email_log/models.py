from datetime import datetime

from pydantic import BaseModel, Field

from paymail.core.db import MongoModel
from paymail.utils import now


class EmailLog(MongoModel):
    """One payslip send attempt, successful or not.

    Indexed on sent_at for most-recent-first listing.
    """

    sender_name: str
    sender_email: str
    recipient_name: str
    recipient_email: str
    recipient_worker_num: str
    recipient_payslip_file: str
    batch_id: str
    batch_item_num: str
    batch_size: int
    date: str  # YYYY-MM-DD, sender's local date
    time_sent: str  # HH:MM:SS, sender's local time
    subject: str
    successful: bool
    sent_at: datetime = Field(default_factory=now)


class PayslipEmail(BaseModel):
    """Payslip email to be sent to one worker."""

    to: str
    subject: str
    html: str = ""
    worker_num: str
    worker_name: str
    batch_id: str
    batch_item_num: str
    batch_size: int
    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "application/pdf"
