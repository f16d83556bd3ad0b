"""
Ephemeris environments: body states, gravitational parameters and radii.
"""
from mga_transfer.environment.base import EphemerisEnvironment
from mga_transfer.environment.approximate import ApproximateEphemeris
