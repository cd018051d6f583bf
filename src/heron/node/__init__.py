"""Content retrieval: brokers that fetch by path and the stores behind them."""

from heron.node.blockstore import FileBlockstore, MemoryBlockstore
from heron.node.brokers import GatewayBroker, PeerBroker
from heron.node.datastore import MemoryDatastore, SqliteDatastore
from heron.node.node import Node, create_node

__all__ = [
    "FileBlockstore",
    "GatewayBroker",
    "MemoryBlockstore",
    "MemoryDatastore",
    "Node",
    "PeerBroker",
    "SqliteDatastore",
    "create_node",
]
