"""ingressd.

Reconciliation daemon that keeps DNS host records pointed at the healthy
members of a tagged server fleet:
 - discovers running instances by tag from the compute inventory (EC2)
 - validates every candidate with strict HTTP + HTTPS quorum probing
 - upserts one multi-value record set per configured host (Route 53)

Every pass is computed from scratch; nothing is cached between cycles.
"""

__version__ = "0.1.0"
