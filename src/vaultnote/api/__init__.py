"""HTTP API for the Vaultnote server."""
