"""Ecosystem discovery and per-package source resolution."""

from docgen.workspace.discovery import DiscoveryService, Ecosystem, Workspace, find_ecosystem_root
from docgen.workspace.locator import ContentRoot, ContentRootKind, SourceLocator

__all__ = [
    "DiscoveryService",
    "Ecosystem",
    "Workspace",
    "find_ecosystem_root",
    "ContentRoot",
    "ContentRootKind",
    "SourceLocator",
]
