"""Clients for the third-party APIs the analysis jobs depend on."""
