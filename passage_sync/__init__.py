"""passage-sync: keep a remote agent's archival memory in step with a repo."""

__version__ = "0.1.0"
