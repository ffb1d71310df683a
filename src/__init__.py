"""Pagelyzer audit core."""
