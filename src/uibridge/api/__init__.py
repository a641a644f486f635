"""FastAPI controller for the remote control protocol."""
