"""
HTTP client for the TPOS OData API.

Every request carries the stored bearer token. A 401 triggers one token
refresh (password grant with the stored login) and a retry.
"""
import json
import logging
import uuid
from typing import Any, Dict, Optional

import requests
from django.conf import settings

from .exceptions import TPOSAPIError, TPOSCredentialsNotFound
from .models import TPOSCredential

logger = logging.getLogger(__name__)


def get_active_credential(token_type: str = 'tpos') -> TPOSCredential:
    """Newest credential of ``token_type`` that holds a bearer token"""
    credential = (
        TPOSCredential.objects.filter(token_type=token_type)
        .exclude(bearer_token__isnull=True)
        .exclude(bearer_token='')
        .order_by('-created_at', '-id')
        .first()
    )
    if credential is None:
        raise TPOSCredentialsNotFound(f"No {token_type} bearer token configured")
    return credential


def clean_base64(value: Optional[str]) -> Optional[str]:
    """Drop a data-URL prefix and any whitespace from a base64 string"""
    if not value:
        return None
    if ',' in value:
        value = value.split(',', 1)[1]
    return ''.join(value.split())


class TPOSClient:
    def __init__(self, credential: Optional[TPOSCredential] = None, session: Optional[requests.Session] = None):
        self.credential = credential or get_active_credential()
        self.session = session or requests.Session()
        self.base_url = settings.TPOS_BASE_URL
        self.timeout = settings.TPOS_REQUEST_TIMEOUT

    def headers(self) -> Dict[str, str]:
        return {
            'accept': 'application/json, text/plain, */*',
            'accept-language': 'vi-VN,vi;q=0.9',
            'authorization': f'Bearer {self.credential.bearer_token}',
            'content-type': 'application/json;charset=UTF-8',
            'x-request-id': str(uuid.uuid4()),
            'x-tpos-lang': 'vi',
            'origin': f'{self.base_url}',
            'referer': f'{self.base_url}/',
        }

    def refresh_token(self) -> str:
        """Request a new token with the stored login and persist it"""
        if not self.credential.username or not self.credential.password:
            raise TPOSCredentialsNotFound(f"Credential {self.credential.id} has no login to refresh its token")

        response = self.session.post(
            f'{self.base_url}/token',
            data={
                'grant_type': 'password',
                'client_id': settings.TPOS_TOKEN_CLIENT_ID,
                'username': self.credential.username,
                'password': self.credential.password,
            },
            timeout=self.timeout,
        )
        if not response.ok:
            raise TPOSAPIError(response.status_code, response.text)

        token = response.json().get('access_token')
        if not token:
            raise TPOSAPIError(response.status_code, 'Token response has no access_token')

        self.credential.bearer_token = token
        self.credential.save(update_fields=['bearer_token', 'updated_at'])
        logger.info(f"Refreshed TPOS token for credential {self.credential.id}")
        return token

    def request_raw(self, method: str, path: str, payload: Any = None, _retry: bool = True) -> requests.Response:
        """Send a request and return the response; raises ``TPOSAPIError`` on non-2xx"""
        url = path if path.startswith('http') else f'{self.base_url}{path}'
        kwargs = {'headers': self.headers(), 'timeout': self.timeout}
        if payload is not None:
            kwargs['data'] = json.dumps(payload)

        response = self.session.request(method, url, **kwargs)

        if response.status_code == 401 and _retry:
            logger.warning(f"TPOS returned 401 for {method} {path}, refreshing token")
            self.refresh_token()
            return self.request_raw(method, path, payload, _retry=False)

        if not response.ok:
            logger.error(f"TPOS {method} {path} failed with {response.status_code}")
            raise TPOSAPIError(response.status_code, response.text)
        return response

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        response = self.request_raw(method, path, payload)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str) -> Any:
        return self.request('GET', path)

    def post(self, path: str, payload: Any = None) -> Any:
        return self.request('POST', path, payload)
