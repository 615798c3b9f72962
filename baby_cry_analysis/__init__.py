"""Chunked cry-detection analysis for recorded and live media."""
