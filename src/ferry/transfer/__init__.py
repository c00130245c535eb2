"""File transfer — the upload configurator, adapters, and filters."""
