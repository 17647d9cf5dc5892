from pathlib import Path

from fastapi_mail import ConnectionConfig

from src.main.config import config

TEMPLATE_FOLDER = Path(__file__).parent / "templates"


def get_fastapi_mail_config() -> ConnectionConfig:
    mail_config = config.mail
    return ConnectionConfig(
        MAIL_USERNAME=mail_config.EMAIL_USER,
        MAIL_PASSWORD=mail_config.EMAIL_PASSWORD,
        MAIL_FROM=mail_config.EMAIL_FROM,
        MAIL_PORT=mail_config.EMAIL_PORT,
        MAIL_SERVER=mail_config.EMAIL_SERVER,
        MAIL_FROM_NAME=mail_config.EMAIL_FROM_NAME,
        MAIL_STARTTLS=mail_config.EMAIL_STARTTLS,
        MAIL_SSL_TLS=mail_config.EMAIL_USE_TLS,
        USE_CREDENTIALS=bool(mail_config.EMAIL_USER),
        TEMPLATE_FOLDER=TEMPLATE_FOLDER,
        VALIDATE_CERTS=mail_config.VALIDATE_CERTS,
    )
