"""
Contract tracker JSON-RPC package.

- tracker.rpc.server: FastAPI app factory (`create_app`) and uvicorn entrypoint
- tracker.rpc.jsonrpc: JSON-RPC 2.0 dispatcher
- tracker.rpc.methods: method registry and the tracker.* methods
"""
