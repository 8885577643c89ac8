"""
Pneuma - On-chain interaction layer for Horreum.

Provides the JSON-RPC client, ABI handling, bound contract handle and
receipt polling for the storage contract.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
