"""
NFT Collection Registry CLI

Command-line interface for managing a bounded NFT collection.
"""

__version__ = "1.0.0"
