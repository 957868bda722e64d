"""
SnapToy - Client core for the SnapToy photo-transformation backend.

The package wraps the hosted backend with:
- A token store for the single session credential
- An HTTP client that injects the bearer token and refreshes it once on 401
- A typed API facade that unwraps the response envelope
- Explicit auth and credit state machines for the presentation layer
"""

__version__ = "0.1.0"
