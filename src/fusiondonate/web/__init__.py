"""Web boundary layer.

- contracts/: request and response models
- services/: order preparation and balance lookups
- controllers/: FastAPI routers

The server never signs on behalf of the user: it only prepares payloads for
client-side signing and relays signed orders.
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
