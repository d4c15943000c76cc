"""Factory helpers for notification services."""

from __future__ import annotations

from clusterops.config import Settings
from clusterops.notifications.email_sender import MailerSendConfig, MailerSendEmailSender, NullEmailSender
from clusterops.notifications.service import ClusterNotificationService


def build_notification_service(settings: Settings) -> ClusterNotificationService:
  """Construct a notification service based on environment configuration."""
  # Email is disabled by default to avoid accidental delivery in dev/test.
  if settings.email_notifications_enabled and settings.mailersend_api_key and settings.email_from_address:
    mailersend_config = MailerSendConfig(
      api_key=settings.mailersend_api_key, from_address=settings.email_from_address, from_name=settings.email_from_name, timeout_seconds=settings.mailersend_timeout_seconds, base_url=settings.mailersend_base_url
    )
    return ClusterNotificationService(email_sender=MailerSendEmailSender(config=mailersend_config), email_enabled=True)
  return ClusterNotificationService(email_sender=NullEmailSender(), email_enabled=False)
