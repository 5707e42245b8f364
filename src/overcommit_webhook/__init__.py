"""
Pod Overcommit Webhook - a mutating admission webhook for Kubernetes pods.

This webhook rewrites container resource requests at pod creation time with:
- Configurable CPU and memory overcommit ratios
- Safety floors so small requests are never starved
- Optional namespace allow-listing
- Fail-open admission (pods are never rejected)
"""

__version__ = "0.1.0"
