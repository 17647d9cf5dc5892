from typing import Any

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pydantic import BaseModel

from src.core.email_service.config import get_fastapi_mail_config
from src.core.email_service.interfaces import AbstractMailer


class FastAPIMailer(AbstractMailer):
    def __init__(self, config: ConnectionConfig):
        self._mailer = FastMail(config)

    async def send_template(
        self,
        subject: str,
        recipients: list[str],
        template_name: str,
        template_data: BaseModel | dict[str, Any],
        subtype: str = "html",
    ) -> None:
        """
        Send an email rendered from a Jinja2 template in the templates folder.

        Args:
            subject (str): The subject of the email.
            recipients (list[str]): Recipient email addresses.
            template_name (str): Template file name, e.g. ``verification.html``.
            template_data (BaseModel | dict): Context rendered into the template.
            subtype (str, optional): ``html`` or ``plain``. Defaults to html.
        """
        template_body = (
            template_data
            if isinstance(template_data, dict)
            else template_data.model_dump()
        )

        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            template_body=template_body,
            subtype=MessageType(subtype),
        )
        await self._mailer.send_message(message, template_name=template_name)


def get_mailer() -> AbstractMailer:
    """Build a mailer for the current process; Celery workers call this per task."""
    return FastAPIMailer(get_fastapi_mail_config())
