"""Public DB API."""
