"""Resolve claim and channel identifiers and serve the content they point at."""
