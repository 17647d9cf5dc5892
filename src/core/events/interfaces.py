from abc import ABC, abstractmethod

from src.core.events.schemas import DomainEvent


class AbstractEventPublisher(ABC):
    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Hand an event to subscribers without waiting for them."""
        pass
