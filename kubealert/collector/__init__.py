"""Collector package for kubealert.

Provides the kubernetes-asyncio list/watch collaborators that feed the
informers.

Submodules
----------
listwatch -- KubernetesListWatch and build_list_watch (kind -> API list call).
"""

from kubealert.collector.listwatch import KubernetesListWatch, build_list_watch

__all__ = ["KubernetesListWatch", "build_list_watch"]
