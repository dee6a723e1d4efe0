"""Clients for external HTTP services."""

from autorag_notes.clients.cloudflare import CloudflareClient

__all__ = ["CloudflareClient"]
