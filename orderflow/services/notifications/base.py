"""
Notification Service Abstract Base Class

Defines interface for sending SMS and Email notifications about orders.
Supports both Mock (development) and Real (production) implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from orderflow.services.notifications.messages import OrderMessage


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_order_update(
        self,
        message: OrderMessage,
        to_email: Optional[str] = None,
        to_phone: Optional[str] = None,
    ) -> NotificationResult:
        """
        Deliver one order message by email and/or SMS.

        Succeeds when at least one channel went through. With no recipient
        at all nothing is sent and the result is a failure.
        """
        if not to_email and not to_phone:
            return NotificationResult(
                success=False,
                error_message="No recipient for order notification",
                provider=self.provider_name,
            )

        sms_result = None
        if to_phone:
            sms_result = await self.send_sms(to_phone, message.sms_text)

        email_result = None
        if to_email:
            email_result = await self.send_email(
                to_email=to_email,
                subject=message.title,
                body_html=message.html,
                body_text=message.body,
            )

        delivered = [r for r in (sms_result, email_result) if r is not None and r.success]
        errors = [
            r.error_message for r in (sms_result, email_result)
            if r is not None and not r.success and r.error_message
        ]
        return NotificationResult(
            success=bool(delivered),
            message_id=delivered[0].message_id if delivered else None,
            error_message="; ".join(errors) or None,
            provider=self.provider_name,
        )
