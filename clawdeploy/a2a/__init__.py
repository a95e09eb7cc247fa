"""
A2A add-on helpers (Keycloak / SPIFFE)
"""

from .keycloak import (
    KeycloakAdmin,
    spiffe_client_id,
    default_keycloak_url,
    DEFAULT_REALM,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_TRUST_DOMAIN,
    OAUTH_PROXY_SERVICE_ACCOUNT,
)

__all__ = [
    "KeycloakAdmin",
    "spiffe_client_id",
    "default_keycloak_url",
    "DEFAULT_REALM",
    "DEFAULT_ADMIN_USERNAME",
    "DEFAULT_ADMIN_PASSWORD",
    "DEFAULT_TRUST_DOMAIN",
    "OAUTH_PROXY_SERVICE_ACCOUNT",
]
