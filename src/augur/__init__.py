"""
Augur: declarative anomaly-detection plans for time-series alerts.

An alert's detection plan is a DAG of typed nodes. Augur validates the
graph, instantiates one operator per node, fans sub-graphs out over
runtime-enumerated variants, and reduces everything to a single result.
"""

__version__ = "0.4.0"
