"""
Numerical propagation: integration of single arcs, sampled state histories
and the midpoint forward/backward reconciliation of analytic legs.
"""
