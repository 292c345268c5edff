"""
Celery Tasks
Out-of-band order notifications (SMS / email) sent by the worker.
"""

import asyncio
import logging
import time

from orderflow.celery_worker import celery_app
from orderflow.core.config import get_settings
from orderflow.services.notifications import (
    ADMIN_NEW_ORDER,
    build_order_message,
    get_notification_service,
)

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def deliver_order_notification(self, kind: str, order_data: dict) -> dict:
    """
    Send one order notification.

    Admin alerts go to the configured kitchen recipients; everything else
    goes to the order's owner (email and / or contact number).

    Args:
        kind: Notification kind (see ``orderflow.services.notifications.messages``)
        order_data: Order in wire shape

    Returns:
        dict: Result of the delivery
    """
    settings = get_settings()
    task_id = self.request.id
    order_id = order_data.get("id", "unknown")

    if kind == ADMIN_NEW_ORDER:
        to_email, to_phone = settings.admin_alert_email, settings.admin_alert_phone
    else:
        to_email, to_phone = order_data.get("userEmail"), order_data.get("contactNumber")

    if not to_email and not to_phone:
        logger.info(f"Task {task_id}: no recipient for {kind} on order #{order_id}, skipped")
        return {"success": False, "skipped": True, "kind": kind, "order_id": order_id}

    logger.info(f"📋 Task {task_id}: sending {kind} for order #{order_id}")
    start_time = time.time()

    message = build_order_message(kind, order_data, settings.restaurant_name)
    service = get_notification_service()
    result = asyncio.run(service.send_order_update(message, to_email=to_email, to_phone=to_phone))

    elapsed = round(time.time() - start_time, 3)
    if result.success:
        logger.info(f"✅ Task {task_id}: {kind} for order #{order_id} sent in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: {kind} for order #{order_id} failed - {result.error_message}")

    return {
        "success": result.success,
        "skipped": False,
        "kind": kind,
        "order_id": order_id,
        "message_id": result.message_id,
        "provider": result.provider,
        "task_id": task_id,
        "processing_time_seconds": elapsed,
    }


