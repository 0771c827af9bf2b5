"""
Customer session timers for diner sockets.
"""

from ws_gateway.components.session.timer import SessionTimer

__all__ = ["SessionTimer"]
