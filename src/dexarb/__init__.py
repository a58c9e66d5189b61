"""
Multi-Chain DEX Arbitrage Detector.

An asynchronous service that observes liquidity pool prices across
several EVM chains, flags two-pool price divergences and ranks
multi-hop arbitrage routes through the token graph.
"""

__version__ = "1.0.0"
__author__ = "Tim"
