"""Application wiring: settings, errors, logging and the app factory."""
