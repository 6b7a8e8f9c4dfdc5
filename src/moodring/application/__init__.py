"""Application layer: session services and background workers."""
