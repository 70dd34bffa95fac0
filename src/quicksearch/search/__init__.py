"""Matching, ranking and query-session control."""
