"""IntelliChat API server."""
