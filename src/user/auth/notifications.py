from typing import NamedTuple
from urllib.parse import urlencode

from loggers import get_logger
from src.core.email_service.interfaces import AbstractMailer
from src.core.email_service.schemas import MailTemplateBody, MailTemplateLinkBody
from src.core.events.schemas import DomainEvent, EventName
from src.core.utils.security import mask_email
from src.main.config import MailConfig, config

logger = get_logger(__name__)


class AuthMail(NamedTuple):
    subject: str
    template_name: str
    link_path_attr: str | None = None


AUTH_MAILS: dict[EventName, AuthMail] = {
    EventName.EMAIL_CONFIRMATION_REQUESTED: AuthMail(
        "Confirm your email", "verification.html", "VERIFY_EMAIL_PATH"
    ),
    EventName.PASSWORD_RESET_REQUESTED: AuthMail(
        "Reset your password", "reset_password.html", "RESET_PASSWORD_PATH"
    ),
    EventName.PASSWORD_CHANGED: AuthMail(
        "Your password was changed", "password_changed.html"
    ),
}


class AuthMailNotifier:
    """
    Turns auth domain events into emails.

    Verification and reset mails carry a frontend link with the one-time
    token; the frontend posts the token back to the API.
    """

    def __init__(
        self,
        mailer: AbstractMailer,
        mail_config: MailConfig = config.mail,
        token_ttl_seconds: int = config.jwt.reset_token_ttl,
    ) -> None:
        self.mailer = mailer
        self.mail_config = mail_config
        self.token_ttl_seconds = token_ttl_seconds

    def build_link(self, path: str, token: str) -> str:
        base_url = self.mail_config.FRONTEND_URL.rstrip("/")
        return f"{base_url}{path}?{urlencode({'token': token})}"

    def _template_body(self, mail: AuthMail, event: DomainEvent) -> MailTemplateBody:
        name = event.payload.get("name") or "there"
        if mail.link_path_attr is None:
            return MailTemplateBody(title=mail.subject, name=name)
        return MailTemplateLinkBody(
            title=mail.subject,
            name=name,
            link=self.build_link(
                getattr(self.mail_config, mail.link_path_attr), event.payload["token"]
            ),
            expires_in_minutes=max(1, self.token_ttl_seconds // 60),
        )

    async def handle(self, event: DomainEvent) -> bool:
        """
        Send the mail that belongs to ``event``.

        Returns:
            bool: False for events that have no mail
        """
        mail = AUTH_MAILS.get(EventName(event.name))
        if mail is None:
            logger.debug("[AuthMailNotifier] No mail for '%s'", event.name)
            return False

        email = event.payload["email"]
        await self.mailer.send_template(
            subject=mail.subject,
            recipients=[email],
            template_name=mail.template_name,
            template_data=self._template_body(mail, event),
        )
        logger.info(
            "[AuthMailNotifier] Sent '%s' to %s", mail.template_name, mask_email(email)
        )
        return True
