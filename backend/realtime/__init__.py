"""
Realtime package for WebSocket ride updates.

Key Components:
    - consumers/: WebSocket consumers (ride tracking + searching pool)
    - notifications.py: helpers that publish ride events to channel groups
    - middleware.py: JWT authentication for WebSocket connections

Usage:
    from realtime.consumers import RideConsumer
    from realtime.notifications import notify_ride_group, notify_searching_pool
"""
