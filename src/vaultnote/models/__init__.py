"""Data models for the Vaultnote server."""
