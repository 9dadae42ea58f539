"""Learning record service."""
