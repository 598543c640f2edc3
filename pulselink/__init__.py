"""PulseLink device simulator: in-memory device state with WebSocket fanout."""

__version__ = "0.1.0"
