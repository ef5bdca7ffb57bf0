"""Weather station telemetry and tide predictions for dashboard display."""

__version__ = "1.0.0"
