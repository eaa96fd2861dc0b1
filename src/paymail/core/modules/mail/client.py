"""Email sending through Microsoft Graph on behalf of the signed-in user."""

import base64

import httpx
import structlog

from paymail.errors import MailSendError

logger = structlog.get_logger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"


class GraphMailClient:
    """Send mail with one file attachment using a delegated bearer token."""

    def __init__(self, http_client: httpx.AsyncClient, graph_url: str = GRAPH_URL) -> None:
        self._http = http_client
        self._graph_url = graph_url

    async def send_mail_with_attachment(
        self,
        access_token: str,
        to: str,
        subject: str,
        html: str,
        attachment: bytes,
        filename: str,
        content_type: str = "application/pdf",
    ) -> None:
        """Send an HTML email with a single attachment, saved to Sent Items.

        Raises:
            MailSendError: Graph rejected the message or could not be reached
        """
        message = {
            "message": {
                "subject": subject,
                "body": {"contentType": "HTML", "content": html},
                "toRecipients": [{"emailAddress": {"address": to}}],
                "attachments": [
                    {
                        "@odata.type": "#microsoft.graph.fileAttachment",
                        "name": filename,
                        "contentType": content_type,
                        "contentBytes": base64.b64encode(attachment).decode("ascii"),
                    }
                ],
            },
            "saveToSentItems": True,
        }
        try:
            response = await self._http.post(
                f"{self._graph_url}/me/sendMail",
                json=message,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("mail_send_failed", error=type(e).__name__)
            raise MailSendError("Mail service unreachable") from e

        if response.is_error:
            logger.warning("mail_send_rejected", status_code=response.status_code)
            raise MailSendError(f"Mail service returned {response.status_code}")
