"""Correlate kube-bind binding requests with the ClusterBindings they
produce.
"""

from bindingtracker.version import __version__

__all__ = ("__version__",)
