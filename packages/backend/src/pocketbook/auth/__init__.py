"""Authentication helpers.

Learn: Two credentials exist in this service:
1. Browser sockets → user id (or a signed JWT when require_signed_token is on)
2. The API layer → shared internal key in the x-api-key header

The socket credential only decides which user channel a connection joins.
"""
