"""Keep a set of workflow file-sets in sync between a local working copy
and a remote store."""

__version__ = "0.1.0"
