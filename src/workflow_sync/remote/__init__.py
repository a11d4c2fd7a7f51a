from workflow_sync.remote.base import RemoteClient, RuleLogClient
from workflow_sync.remote.client import HttpRemoteClient

__all__ = [
    "HttpRemoteClient",
    "RemoteClient",
    "RuleLogClient",
]
