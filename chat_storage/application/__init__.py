"""Application layer: conversation store service and adapters."""
