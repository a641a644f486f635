"""Pydantic / dataclass models shared across UIBridge."""
