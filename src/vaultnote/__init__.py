"""
Vaultnote - A personal note vault backend with a linked-note graph.
This package implements an HTTP API for managing per-user vaults of notes,
with directed links between notes forming a Zettelkasten-style knowledge graph.

Every note, vault and link operation is scoped to the authenticated owner.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vaultnote")
except PackageNotFoundError:
    __version__ = "0.3.0"
