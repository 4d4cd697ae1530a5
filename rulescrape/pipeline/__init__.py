"""Extraction pipeline: parsing, rules, transformations and batching."""
