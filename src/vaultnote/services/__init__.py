"""Service layer for the Vaultnote server."""
