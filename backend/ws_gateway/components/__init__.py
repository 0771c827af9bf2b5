"""
WebSocket Gateway Components.

- core/       - constants and connection context
- orders/     - live order store and snapshot broadcasting
- session/    - customer session timers
- endpoints/  - WebSocket endpoints (base, staff, diner)
"""
