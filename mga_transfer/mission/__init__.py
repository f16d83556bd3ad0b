"""
Mission Analysis Package
Contains tools for high-level mission design, including:
- Body sequences, legs and the transfer parameter vector
- Departure and capture analysis (C3, DLA, RLA, impulsive costs)
- Comparison plots between analytic and propagated trajectories
"""
