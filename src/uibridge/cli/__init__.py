"""UIBridge command-line interface."""
