"""Asynchronous tasks of the orders module."""

from __future__ import annotations

import smtplib

import httpx
import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from modules.orders.notifications import EMAIL, SMS, render

logger = structlog.get_logger(__name__)


class NotificationDeliveryError(Exception):
    """Transient provider failure; the task retries with backoff."""


def to_e164(phone: str) -> str:
    """Prefix local numbers with the default country code."""
    number = "".join(phone.split())
    if number.startswith("+"):
        return number
    return f"{settings.SMS_DEFAULT_COUNTRY_CODE}{number.lstrip('0')}"


@shared_task(
    bind=True,
    name="orders.send_notification",
    autoretry_for=(NotificationDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    max_retries=settings.NOTIFICATION_MAX_RETRIES,
)
def send_notification(self, channel: str, recipient: str, template: str, payload: dict) -> str:
    """Deliver one rendered notification through its provider."""
    subject, body = render(template, payload)
    log = logger.bind(
        channel=channel,
        template=template,
        attempt=self.request.retries + 1,
    )

    if channel == EMAIL:
        try:
            send_mail(
                subject,
                body,
                settings.DEFAULT_FROM_EMAIL,
                [recipient],
                fail_silently=False,
            )
        except (smtplib.SMTPException, OSError) as exc:
            log.warning("notification.failed", error=str(exc))
            raise NotificationDeliveryError(str(exc)) from exc
        log.info("notification.sent")
        return "sent"

    if channel == SMS:
        if not settings.SMS_GATEWAY_URL:
            log.info("notification.sms_skipped", reason="gateway not configured")
            return "skipped"
        try:
            response = httpx.post(
                settings.SMS_GATEWAY_URL,
                json={"to": to_e164(recipient), "body": body},
                headers={"Authorization": f"Bearer {settings.SMS_GATEWAY_TOKEN}"},
                timeout=10.0,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("notification.failed", error=str(exc))
            raise NotificationDeliveryError(str(exc)) from exc
        log.info("notification.sent")
        return "sent"

    log.error("notification.unknown_channel")
    return "rejected"
