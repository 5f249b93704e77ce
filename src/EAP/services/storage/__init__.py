"""Object storage and upload validation."""
