"""SOS dispatch service."""
