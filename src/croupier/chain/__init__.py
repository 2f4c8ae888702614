"""
On-chain interaction layer.

JSON-RPC transport, ABI encoding, transaction building and wallet
providers. Uses httpx + eth-account + eth-abi instead of web3.py.
"""
