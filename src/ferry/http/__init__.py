"""HTTP transport — request body parsing into uploaded files."""
