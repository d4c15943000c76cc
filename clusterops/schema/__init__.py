"""Schema package exports."""

from .backups import Backup
from .clusters import Cluster
from .directory import DirectoryProject, DirectoryUser
from .events import ClusterEvent
from .jobs import ClusterJob

__all__ = ["Backup", "Cluster", "ClusterEvent", "ClusterJob", "DirectoryProject", "DirectoryUser"]
