"""
Telnyx to Hume relay.

This application relays real-time call audio between Telnyx media streaming and
Hume EVI (emotion detection and speech synthesis). Every Telnyx WebSocket is
paired with exactly one Hume WebSocket; both are torn down together.

Architecture Overview:
- FastAPI server exposing the /telnyx WebSocket endpoint and a health endpoint
- One Hume EVI connection per call, configured once after it opens
- Hume audio output delivered through an HTTP speak webhook
- Hume emotion predictions answered with a canned text turn

Key Components:
- bot: The bridge translating between Telnyx messages and Hume messages
- config: Constants, logging setup and environment settings
- handlers: Per-message-type handlers for Telnyx and Hume messages
- models: Message schemas, the emotion table and the session registry
- services: The Hume WebSocket client and the speak webhook client
- websocket_manager: Owner of each Telnyx socket and its session lifecycle
- server: Uvicorn server that drains sessions on termination signals

Getting Started:
1. Set up environment variables:
   - HUME_WS_URL: Hume EVI WebSocket URL
   - HUME_API_KEY: Hume API key
   - WEBHOOK_SPEAK_URL: URL of the service that plays audio on the call
   - PORT: Port to listen on (default BRIDGE_PORT or 3001)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   telnyx-hume-relay
   ```

3. Point the Telnyx media stream at wss://your-server/telnyx
"""
