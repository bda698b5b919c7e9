"""
Blockchain client backends shipped with chainclient.

Available backends:
- MemoryClient: In-process ledger with secp256k1 signing, for development and tests

Real chains are supplied by the application: subclass BlockchainClient and
register the class with a Registry.
"""

from chainclient.backends.memory import MemoryClient

__all__ = ["MemoryClient"]
