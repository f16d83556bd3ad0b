"""
SPICE-backed ephemeris environment.
"""
