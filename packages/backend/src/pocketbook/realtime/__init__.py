"""Real-time infrastructure — connection registry + WebSocket fan-out.

Learn: Events flow in one direction:
1. API layer commits a write → notify(user_id, event, payload)
2. Dispatcher resolves the user's channel → transport emits to every socket

Connections join a per-user channel ("user:<id>") when they authenticate
and leave it on disconnect. The registry is the source of truth for who
is online; the transport owns the actual sockets.
"""
