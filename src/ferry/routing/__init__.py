"""Routing — a prioritized table of named URL-matching strategies.

Route tables are loaded once at startup into an immutable ``Router``;
configuration mistakes surface at load time, never per request.
"""
