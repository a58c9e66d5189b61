"""Simulation module for demo runs without RPC endpoints."""

from dexarb.simulation.market import PoolSimulator, SimulatedChainClient


__all__ = [
    "PoolSimulator",
    "SimulatedChainClient",
]
