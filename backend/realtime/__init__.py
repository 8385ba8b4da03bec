"""
Realtime app for WebSocket communication and notifications.

This app provides:
- WebSocket consumers for providers and customers
- Push + WebSocket notification helpers for job events
- JWT authentication middleware for WebSocket connections

Key Components:
    - consumers/: WebSocket consumers (provider, customer)
    - notifications.py: Push delivery and job event helpers
    - middleware.py: JWT (query string) auth for sockets

Usage:
    from realtime.consumers import ProviderConsumer, CustomerConsumer
    from realtime.notifications import notify_provider_event, notify_customer_status
"""
