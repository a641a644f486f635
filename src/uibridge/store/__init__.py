"""Durable persistence for captured screenshots."""
