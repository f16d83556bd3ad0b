"""
Analytic trajectory tools: Lambert arcs, conic propagation, flybys and the
patched-conic solver that chains them.
"""
