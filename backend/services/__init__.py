"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - ride_management: Ride store, state machine and lifecycle operations
    - routing: Route lookup (OSRM) used at ride creation
"""
