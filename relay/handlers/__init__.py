"""
Handlers module for the messages flowing through the relay.

Key components:
- call_handlers: Telnyx call lifecycle and media messages (call.initiated,
  call.answered, media, call.hangup).
- hume_handlers: Hume EVI messages (audio_output, predictions, error).

Every handler takes the decoded message, the session it belongs to and the
TelnyxHumeBridge, and returns None.
"""

# Handlers module initialization
