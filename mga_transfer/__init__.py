"""
Multi-leg gravity-assist transfer design.

Builds an analytic patched-conic (Lambert chain) transfer across a body
sequence and reconciles it with a numerically integrated N-body model by
propagating each leg forward and backward from its time midpoint.
"""

__version__ = "0.1.0"
