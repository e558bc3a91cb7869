"""Couche infrastructure: adapters, persistance, clients HTTP et configuration."""
