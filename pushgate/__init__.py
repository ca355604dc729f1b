"""
PushGate - Push-Triggered Availability Responder

This package contains the device-side logic that answers the middleware
when a push notification announces an incoming call:
- Core decision, reporting and registration lifecycle logic
- Service interfaces for reachability, SIP registration, credentials
  and the middleware acknowledgment channel
- HTTP API for push delivery and operational visibility
"""

__version__ = "0.1.0"
