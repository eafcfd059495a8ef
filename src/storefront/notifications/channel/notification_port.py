"""Notification port — abstract interface for dispatching a message to a user."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> dict:
        """Send a message to ``recipient`` (a user identifier resolved by the adapter).

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
