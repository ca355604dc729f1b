"""
PushGate - HTTP API
"""
