"""Core operations: note storage, tenant filters, search and auxiliary calls."""
