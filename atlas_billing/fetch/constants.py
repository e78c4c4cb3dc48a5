"""HTTP constants for the authenticated fetch layer.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

DEFAULT_BASE_URL = "https://cloud.mongodb.com/api/atlas/v1.0"
DEFAULT_USER_AGENT = "atlas-billing-exporter/0.4"
DEFAULT_TIMEOUT_SECONDS = 60.0

# HTTP status codes the handshake branches on
HTTP_STATUS_OK = 200
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404

# Header names
WWW_AUTHENTICATE_HEADER = "WWW-Authenticate"
AUTHORIZATION_HEADER = "Authorization"

HTTP_METHOD_GET = "GET"
