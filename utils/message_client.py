"""
Outbound message delivery through SendBlue (iMessage/SMS).

Delivery failures are logged and reported to the caller as False.
Nothing is retried here.
"""

import asyncio

import aiohttp

from config.settings import settings
from core import get_logger, MessageDeliveryError

logger = get_logger(__name__)


class MessageClient:
    """Sends text messages to a phone number."""

    def __init__(
        self,
        api_url: str = settings.SENDBLUE_API_URL,
        api_key: str = settings.SENDBLUE_API_KEY,
        api_secret: str = settings.SENDBLUE_API_SECRET,
        from_number: str = settings.SENDBLUE_PHONE_NUMBER,
        timeout_seconds: float = 15.0,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.api_secret = api_secret
        self.from_number = from_number
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _post(self, payload: dict) -> None:
        headers = {
            "sb-api-key-id": self.api_key,
            "sb-api-secret-key": self.api_secret,
            "Content-Type": "application/json",
        }
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self.api_url, json=payload, headers=headers) as response:
                if response.status >= 300:
                    raise MessageDeliveryError(
                        status_code=response.status, details=await response.text()
                    )

    async def send(self, to_address: str, body: str) -> bool:
        """
        Deliver a message.

        Args:
            to_address: Recipient phone number
            body: Message text

        Returns:
            True if the provider accepted it, False otherwise
        """
        if not to_address:
            logger.warning("No recipient configured, message dropped", body_length=len(body))
            return False

        payload = {"number": to_address, "content": body}
        if self.from_number:
            payload["from_number"] = self.from_number

        try:
            await self._post(payload)
        except MessageDeliveryError as e:
            logger.error("Failed to send message", **e.to_dict()["context"])
            return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Failed to send message", error=str(e))
            return False

        logger.info("Message sent", to=to_address[-4:], body_length=len(body))
        return True


# Singleton instance
message_client = MessageClient()
