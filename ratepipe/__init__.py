"""ratepipe: rate-limited request admission pipeline.

Decouples producing work items from executing them against a remote
service with a strict request quota.
"""

__version__ = "0.1.0"
