"""
raftprobe: a verification and control harness for replicated tablet clusters.

The harness drives and inspects a running set of tablet servers purely through
their RPC interfaces. It discovers servers through the master, probes each
replica's log position and consensus state, perturbs the cluster with
elections, step downs, config changes and writes, and waits, with hard
deadlines, for the cluster to converge on an expected state.
"""

__version__ = "0.1.0"
