"""Utilities shared across benchpress: HTML escaping and the LRU cache."""
