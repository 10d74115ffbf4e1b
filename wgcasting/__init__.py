"""WG Casting backend: document store access, domain services and backups."""
