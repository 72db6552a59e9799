"""
snapkeep - Compliance-aware lifecycle evaluation for retained backup snapshots.

This package decides, per snapshot, whether retention policy requires the
snapshot to be kept, allows it to be deleted, or forces its deletion, and
aggregates bulk evaluations into auditable dry-run reports.
"""

__version__ = "0.1.0"
