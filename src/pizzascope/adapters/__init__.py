"""Adapters connecting the telemetry core to frameworks, sinks and logging."""
