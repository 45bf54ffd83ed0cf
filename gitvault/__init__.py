"""Vault indexing and link-graph service for Git-hosted Markdown vaults."""

__version__ = "0.1.0"
