"""Notification orchestration for cluster lifecycle events."""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool

from clusterops.notifications.contracts import EmailNotification, EmailSender, NotificationProviderError
from clusterops.notifications.template_renderer import render_email_template

logger = logging.getLogger(__name__)


class ClusterNotificationService:
  """Sends cluster lifecycle emails; delivery failures are logged, never raised."""

  def __init__(self, *, email_sender: EmailSender, email_enabled: bool) -> None:
    self._email_sender = email_sender
    self._email_enabled = email_enabled

  async def send_cluster_ready(self, email: str, cluster_name: str, connection_string: str, project_name: str) -> None:
    """Tell the cluster's creator that it accepts connections."""
    # Nothing to do when email delivery is not configured.
    if not self._email_enabled:
      return

    try:
      # Rendering sits inside the try so a broken template cannot fail the calling job.
      subject, text_body, html_body = render_email_template(template_id="cluster_ready_v1", placeholders={"cluster_name": cluster_name, "connection_string": connection_string, "project_name": project_name})
      notification = EmailNotification(to_address=email, to_name=None, subject=subject, text=text_body, html=html_body)

      # The sender is blocking; keep it off the event loop.
      send_result = await run_in_threadpool(self._email_sender.send, notification)
      logger.info("Cluster ready email sent to=%s provider=%s message_id=%s", email, send_result.get("provider"), send_result.get("message_id"))

    except NotificationProviderError as exc:
      # Provider rejections (bad key, 403) are expected in misconfigured environments; skip the traceback.
      logger.error("Cluster ready email delivery failed (provider error): %s", exc)

    except Exception as exc:  # noqa: BLE001
      logger.error("Cluster ready email delivery failed: %s", exc, exc_info=True)
