"""Core infrastructure: configuration, scheduling and state machines."""
