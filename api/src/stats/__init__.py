"""Aggregation module: per-user and platform statistics, computed on demand."""
