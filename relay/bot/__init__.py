"""
Bot module bridging Telnyx media streams with Hume EVI.

Key components:
- TelnyxHumeBridge: Opens and configures the Hume connection of each session,
  translates Telnyx media frames into Hume audio messages, and routes Hume
  output to the speak webhook or back to Hume as a text turn.

Usage examples:
```python
from relay.bot import TelnyxHumeBridge
from relay.services import SpeakWebhook

bridge = TelnyxHumeBridge(settings, SpeakWebhook(settings.webhook_speak_url))
await bridge.open_backend(session)
await bridge.forward_audio(session, media_message)
```
"""

from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge

__all__ = ["TelnyxHumeBridge"]
