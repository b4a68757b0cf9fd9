"""Pure telemetry domain logic with no network I/O."""
