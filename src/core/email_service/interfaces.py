from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class AbstractMailer(ABC):
    @abstractmethod
    async def send_template(
        self,
        subject: str,
        recipients: list[str],
        template_name: str,
        template_data: BaseModel | dict[str, Any],
        subtype: str = "html",
    ) -> None:
        """Render ``template_name`` with ``template_data`` and send it."""
        pass
