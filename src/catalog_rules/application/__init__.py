"""Application layer: engines, services, ports and write-boundary schemas."""
