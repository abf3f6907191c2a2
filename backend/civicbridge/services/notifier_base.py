"""
CivicBridge Backend: Notification Channel Interface
===================================================

What:  Contract for delivering status-change notifications to applicants.
How:   Concrete channels (webhook, log) implement `send()`. The dispatcher
       owns retries and error isolation, so a channel only has to deliver one
       message or raise.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StatusNotification:
    """One message: a project changed status, addressed to one applicant."""

    recipient_id: str
    recipient_username: str
    recipient_email: Optional[str]
    project_id: str
    project_title: str
    status: str

    def to_payload(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "event": "project.status_changed",
            "recipient": {
                "id": data["recipient_id"],
                "username": data["recipient_username"],
                "email": data["recipient_email"],
            },
            "project": {"id": data["project_id"], "title": data["project_title"]},
            "status": data["status"],
        }


class Notifier(ABC):
    """
    Abstract delivery channel.

    Implementations:
        - WebhookNotifier: POSTs JSON to an external mailer/webhook
        - LogNotifier: writes the notification to the application log
    """

    name: str = "notifier"

    @abstractmethod
    async def send(self, notification: StatusNotification) -> None:
        """
        Deliver a single notification.

        Raises:
            Any exception on delivery failure; the dispatcher decides whether
            to retry.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the channel."""
        return None
