"""
fsharp-client - client-side runtime for the F# language server.

Provides:
- Platform detection and provisioning of the matching server build
- Supervision of the server process over a stdio JSON-RPC transport
- Tracking of the server's project-checking progress
- An interactive F# console (``dotnet fsi``)
"""

__version__ = "0.1.0"
