"""configset - track, apply, prune and delete named sets of cluster objects."""

__version__ = "0.1.0"
