"""Payment links for plans, created on the Asaas API"""
import asyncio
import logging
import os
from decimal import Decimal

import aiohttp

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ASAAS_API_URL = os.getenv("ASAAS_API_URL", "https://www.asaas.com/api/v3")
ASAAS_API_KEY = os.getenv("ASAAS_API_KEY")


class CheckoutLinkError(Exception):
    def __init__(self, message: str, status: int = 502):
        super().__init__(message)
        self.message = message
        self.status = status


def parse_payment_link_response(status: int, data: dict) -> str:
    """Pull the link URL out of an Asaas response or raise with its error text"""
    data = data or {}
    if status >= 400:
        errors = data.get("errors") or []
        message = (
            (errors[0].get("description") if errors else None)
            or data.get("message")
            or "Failed to create payment link"
        )
        logger.error(f"Payment provider returned {status}: {message}")
        raise CheckoutLinkError(message)

    url = data.get("url") or data.get("shortUrl")
    if not url:
        raise CheckoutLinkError("Payment provider returned no link")
    return url


async def create_payment_link(name: str, description: str | None, value: Decimal) -> str:
    if not ASAAS_API_KEY:
        raise CheckoutLinkError("Payment provider is not configured", status=503)
    if not name or value <= 0:
        raise CheckoutLinkError("A name and a positive price are required", status=400)

    payload = {
        "name": name,
        "description": description or name,
        "value": float(value),
    }
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "access_token": ASAAS_API_KEY,
    }

    try:
        timeout = aiohttp.ClientTimeout(total=15)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                f"{ASAAS_API_URL}/paymentLinks", json=payload, headers=headers
            ) as response:
                data = await response.json(content_type=None)
                status = response.status
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"HTTP request error creating payment link: {e}")
        raise CheckoutLinkError("Could not reach the payment provider")

    url = parse_payment_link_response(status, data)
    logger.info(f"Created payment link for '{name}'")
    return url
