"""Internal RPC routes. The acting identity is always an explicit request field."""
