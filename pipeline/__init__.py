"""Scan and publish state machines over one dashboard session."""
