from src.core.schemas import Base


class MailTemplateBody(Base):
    title: str
    name: str


class MailTemplateLinkBody(MailTemplateBody):
    link: str
    expires_in_minutes: int
