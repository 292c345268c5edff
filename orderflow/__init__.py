"""
                Order Flow

Restaurant ordering backend with real-time order synchronization:
an HTTP mutation API, room-based WebSocket fan-out, and an asyncio
client library (live channel + polling fallback + view reducers).

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
