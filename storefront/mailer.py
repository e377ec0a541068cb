"""
Transactional email dispatch.

Every function here is best-effort: failures are logged and reported as a
``False`` return, never raised, so sending an email cannot change the
outcome of the operation that triggered it.
"""
import asyncio
import logging

import aiohttp

from storefront.config import get_settings
from storefront.emails import (
    OrderConfirmation,
    ShippingNotification,
    order_confirmation_subject,
    render_order_confirmation,
    render_shipping_notification,
    shipping_notification_subject,
)

logger = logging.getLogger(__name__)


async def send_email(to: str, subject: str, html: str) -> bool:
    settings = get_settings()
    if not settings.email_api_url or not settings.email_api_key:
        logger.warning("Email API not configured, skipping email to %s", to)
        return False

    url = f"{settings.email_api_url.rstrip('/')}/notification/email"
    payload = {
        "to": to,
        "subject": subject,
        "html": html,
        "from": settings.email_sender,
    }
    headers = {"Authorization": f"Bearer {settings.email_api_key}"}
    timeout = aiohttp.ClientTimeout(total=settings.email_timeout_seconds)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    logger.error(
                        f"Email API error for {to}: {response.status} - {error_text}"
                    )
                    return False
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
        return False

    logger.info("Email sent to %s", to)
    return True


async def send_order_confirmation_email(data: OrderConfirmation) -> bool:
    return await send_email(
        data.customer_email,
        order_confirmation_subject(data.order_number, data.language),
        render_order_confirmation(data),
    )


async def send_shipping_notification_email(data: ShippingNotification) -> bool:
    return await send_email(
        data.customer_email,
        shipping_notification_subject(data.order_number, data.language),
        render_shipping_notification(data),
    )
