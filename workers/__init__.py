"""Background worker processes."""
