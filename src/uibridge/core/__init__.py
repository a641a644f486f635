"""Execution engine: selector resolution, command registry, and the ``UIBridge`` facade."""
