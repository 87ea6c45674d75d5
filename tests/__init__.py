"""
Tests package for the project info propagator.

Contains:
- unit/: Unit tests for individual components, no cluster required
"""
