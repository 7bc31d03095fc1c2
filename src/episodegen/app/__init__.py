"""Collaborateurs applicatifs : réglages TOML et ligne de commande."""
