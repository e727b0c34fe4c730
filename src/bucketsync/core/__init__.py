"""Core shared modules for bucketsync."""
