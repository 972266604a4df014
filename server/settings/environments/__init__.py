"""Environment specific settings."""
