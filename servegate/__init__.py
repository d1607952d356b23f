"""
ServeGate - Authenticating edge service for ordering partners

Authenticates inbound requests and brokers data between the ordering
front end, an OAuth-based order/catalog partner and a storage backend.

Modules:
- auth: Authentication gate (bearer tokens, licence rule, bot challenge)
- crypto: Credential encryption at rest and webhook signatures
- partner: Partner OAuth lifecycle, catalog sync, webhook ingestion
- storage: Connection, order and menu persistence
- middleware: Per-request gate execution and CORS merging
- api: Wire models and CORS policy
"""

__version__ = "1.0.0"
