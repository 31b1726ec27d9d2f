"""HTTP API package: routes, request/response schemas and middleware."""
