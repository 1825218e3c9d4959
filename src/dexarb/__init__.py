"""
DEX Price-Divergence Monitor.

Polls two decentralized exchanges for the same trading pairs, computes
the price divergence between them and flags pairs that are worth a
flash-loan arbitrage.
"""

__version__ = "1.0.0"
__author__ = "Tim"
