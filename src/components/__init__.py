"""Audit core components."""
