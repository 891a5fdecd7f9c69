"""Mock records API for development and tests."""
