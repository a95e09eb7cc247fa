import requests
from typing import Optional
from loguru import logger

DEFAULT_REALM = "spiffe-demo"
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"
DEFAULT_TRUST_DOMAIN = "demo.example.com"
OAUTH_PROXY_SERVICE_ACCOUNT = "openclaw-oauth-proxy"

def spiffe_client_id(trust_domain: str, namespace: str, service_account: str = OAUTH_PROXY_SERVICE_ACCOUNT) -> str:
    """Keycloak clientId auto-registered by AuthBridge for a workload"""
    return f"spiffe://{trust_domain}/ns/{namespace}/sa/{service_account}"

def default_keycloak_url(cluster_domain: str) -> str:
    return f"https://keycloak-spiffe-demo.{cluster_domain}"

class KeycloakAdmin:
    """Client for the few Keycloak admin REST calls needed at teardown"""

    def __init__(self, url: str, realm: str = DEFAULT_REALM,
                 username: str = DEFAULT_ADMIN_USERNAME, password: str = DEFAULT_ADMIN_PASSWORD,
                 timeout: int = 5):
        self.url = url.rstrip("/")
        self.realm = realm
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = requests.Session()
        self.token = None

    def get_token(self) -> Optional[str]:
        """
        Obtain an admin access token from the master realm

        Returns:
            Optional[str]: Access token, or None when authentication fails
        """
        try:
            response = self.session.post(
                f"{self.url}/realms/master/protocol/openid-connect/token",
                data={
                    "grant_type": "password",
                    "client_id": "admin-cli",
                    "username": self.username,
                    "password": self.password,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            self.token = response.json().get("access_token")
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Keycloak token request failed: {str(e)}")
            self.token = None
        return self.token

    def _headers(self):
        return {"Authorization": f"Bearer {self.token}"}

    def find_client_uuid(self, client_id: str) -> Optional[str]:
        try:
            response = self.session.get(
                f"{self.url}/admin/realms/{self.realm}/clients",
                params={"clientId": client_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            clients = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Keycloak client lookup failed: {str(e)}")
            return None
        if not clients:
            return None
        return clients[0].get("id")

    def delete_client(self, uuid: str) -> bool:
        try:
            response = self.session.delete(
                f"{self.url}/admin/realms/{self.realm}/clients/{uuid}",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug(f"Keycloak client delete failed: {str(e)}")
            return False
        return response.status_code == 204
