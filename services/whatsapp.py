# FILE: services/whatsapp.py
"""
WhatsApp Cloud API channel adapter.

Inbound: flattens the webhook envelope into NormalizedMessage objects.
Outbound: posts text messages to the Graph API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from core.errors import DeliveryFailure
from models.message import NormalizedMessage, OutboundReply
from services.channel import MessageSender

logger = logging.getLogger("whatsapp")

GRAPH_BASE_URL = "https://graph.facebook.com"


def parse_webhook(body: Dict[str, Any]) -> List[NormalizedMessage]:
    """
    Extract every user message from a Cloud API webhook body.

    Status callbacks (delivered/read receipts) carry no "messages" and
    produce an empty list. Audio messages come through with empty text and
    the media id as attachment_ref. channel_id is the business number
    (metadata.phone_number_id) that received the message.
    """
    messages: List[NormalizedMessage] = []
    for entry in body.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value") or {}
            channel_id = (value.get("metadata") or {}).get("phone_number_id")
            for msg in value.get("messages") or []:
                sender = msg.get("from")
                if not sender:
                    continue
                msg_type = msg.get("type", "text")
                text = ""
                attachment_ref: Optional[str] = None
                if msg_type == "text":
                    text = (msg.get("text") or {}).get("body", "")
                elif msg_type == "interactive":
                    interactive = msg.get("interactive") or {}
                    reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
                    text = reply.get("title", "")
                elif msg_type in ("audio", "voice"):
                    attachment_ref = (msg.get(msg_type) or {}).get("id")
                messages.append(
                    NormalizedMessage(
                        identity=sender,
                        text=text,
                        attachment_ref=attachment_ref,
                        channel_id=channel_id,
                    )
                )
    return messages


class WhatsAppSender(MessageSender):

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        phone_number_id: str,
        api_version: str = "v19.0",
    ):
        self.client = client
        self.token = token
        self.phone_number_id = phone_number_id
        self.api_version = api_version

    def url_for(self, channel_id: Optional[str] = None) -> str:
        return f"{GRAPH_BASE_URL}/{self.api_version}/{channel_id or self.phone_number_id}/messages"

    async def send(self, reply: OutboundReply) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "to": reply.identity,
            "text": {"body": reply.text},
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        try:
            response = await self.client.post(self.url_for(reply.channel_id), json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"WhatsApp send failed: {e}") from e

        if response.status_code // 100 != 2:
            raise DeliveryFailure(
                f"WhatsApp send answered {response.status_code}: {response.text[:200]}"
            )
        logger.info(f"[DELIVERED] to={reply.identity}")
