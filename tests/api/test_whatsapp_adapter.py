import asyncio
import json
import pytest
import httpx

from core.errors import DeliveryFailure
from models.message import OutboundReply
from services.whatsapp import WhatsAppSender, parse_webhook


def _send(handler, reply):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await WhatsAppSender(client, token="tok", phone_number_id="1098765").send(reply)

    asyncio.run(run())


def test_send_posts_text_message():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"messages": [{"id": "wamid.x"}]})

    _send(handler, OutboundReply(identity="256772123456", text="hello"))

    assert seen["url"] == "https://graph.facebook.com/v19.0/1098765/messages"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {
        "messaging_product": "whatsapp",
        "to": "256772123456",
        "text": {"body": "hello"},
    }


def test_send_uses_the_reply_channel_number():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={})

    _send(handler, OutboundReply(identity="256772123456", text="hi", channel_id="555"))

    assert seen["url"] == "https://graph.facebook.com/v19.0/555/messages"


def test_send_non_2xx_is_delivery_failure():
    with pytest.raises(DeliveryFailure):
        _send(lambda request: httpx.Response(401, json={"error": "bad token"}), OutboundReply(identity="x", text="y"))


def test_parse_webhook_handles_text_audio_and_buttons():
    body = {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "changes": [
                    {
                        "value": {
                            "metadata": {"phone_number_id": "42"},
                            "messages": [
                                {"from": "a", "type": "text", "text": {"body": "balance"}},
                                {"from": "b", "type": "audio", "audio": {"id": "media-1"}},
                                {"from": "c", "type": "interactive",
                                 "interactive": {"button_reply": {"id": "1", "title": "Pay water"}}},
                                {"type": "text", "text": {"body": "no sender"}},
                            ],
                        }
                    }
                ]
            }
        ],
    }

    messages = parse_webhook(body)

    assert [(m.identity, m.text, m.attachment_ref) for m in messages] == [
        ("a", "balance", None),
        ("b", "", "media-1"),
        ("c", "Pay water", None),
    ]
    assert {m.channel_id for m in messages} == {"42"}
