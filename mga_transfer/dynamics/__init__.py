"""
Force models of the numerical propagation: per-leg perturbation sets and the
point-mass N-body equations of motion that evaluate them.
"""
