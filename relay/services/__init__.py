"""
Services module for the external connections made by the relay.

Key components:
- HumeClient: One WebSocket connection to Hume EVI per call, with an ordered
  receive task and no reconnection.
- SpeakWebhook: Background HTTP POSTs asking the call-control service to play
  Hume audio on the call.

Usage examples:
```python
from relay.services import HumeClient, SpeakWebhook

client = HumeClient(url, api_key, on_message=handle, on_closed=closed, label=session_id)
await client.connect()
await client.send_json({"type": "audio", "audio": payload})
client.start()

webhook = SpeakWebhook(webhook_url)
webhook.dispatch(SpeakRequest(call_control_id=ccid, text="Hello", audio=audio))
await webhook.aclose()
```
"""

from relay.services.hume_client import HumeClient
from relay.services.speak_webhook import SpeakWebhook

__all__ = ["HumeClient", "SpeakWebhook"]
