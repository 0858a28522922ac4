"""Storage layer for temporary attachment files."""

from .workspace import ScratchSpace, Workspace

__all__ = ["ScratchSpace", "Workspace"]
