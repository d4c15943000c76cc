from . import clusters, jobs

__all__ = ["clusters", "jobs"]
