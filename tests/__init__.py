"""
VineTrack Test Suite

Tests are organized by area:
- Vessel allocation: ordering, planning, reconciliation, lifecycle, splitting
- Production store and maintenance services
- HTTP API and management commands
"""
