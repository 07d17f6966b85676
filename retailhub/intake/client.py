"""
HTTP client for the retailhub REST API used by the purchase intake form
"""
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from .exceptions import CollaboratorError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://127.0.0.1:8000/api/v1'
DEFAULT_TIMEOUT = 10


def _error_message(response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason or f'HTTP {response.status_code}'
    if isinstance(data, dict):
        if data.get('error'):
            return str(data['error'])
        if data.get('detail'):
            return str(data['detail'])
        for key, value in data.items():
            if isinstance(value, list) and value:
                return str(value[0]) if key == 'non_field_errors' else f'{key}: {value[0]}'
    return str(data)


class RetailHubClient:
    """
    Thin wrapper over requests.Session.

    Every failure (connection error, timeout, non-2xx response) is raised as
    CollaboratorError; nothing is retried.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.access_token = None
        self.refresh_token = None

    def _request(self, method: str, endpoint: str, **kwargs):
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {endpoint} failed: {e}")
            raise CollaboratorError(f"Could not reach server: {e}") from e

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            logger.warning(f"{method} {endpoint} returned {response.status_code}: {message}")
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise CollaboratorError(message, status_code=response.status_code, payload=payload)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def authenticate(self, username: str, password: str) -> Dict:
        """Log in and attach the access token to every later request"""
        data = self._request('POST', '/auth/login/', json={'username': username, 'password': password})
        self.access_token = data.get('access')
        self.refresh_token = data.get('refresh')
        self.session.headers.update({
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        })
        return data

    # Suppliers

    def search_suppliers(self, query: str) -> List[Dict]:
        data = self._request('GET', f"/suppliers/search/{quote(query, safe='')}/")
        return data.get('suppliers', [])

    def supplier_balance(self, supplier_id) -> Dict:
        return self._request('GET', f"/suppliers/{supplier_id}/balance/")

    def supplier_balance_by_name(self, name: str) -> Dict:
        return self._request('GET', f"/suppliers/by-name/{quote(name, safe='')}/balance/")

    # Catalog

    def search_products(self, query: str) -> List[Dict]:
        data = self._request('GET', f"/products/search/{quote(query, safe='')}/")
        return data.get('products', [])

    def create_product(self, name: str, sku: Optional[str] = None, category: Optional[str] = None,
                       description: Optional[str] = None, is_stitched: bool = False) -> Dict:
        payload = {'name': name, 'is_stitched': is_stitched}
        for key, value in (('sku', sku), ('category', category), ('description', description)):
            if value:
                payload[key] = value
        data = self._request('POST', '/products/', json=payload)
        return data['product']

    def list_variants(self, product_id) -> List[Dict]:
        data = self._request('GET', f"/products/{product_id}/variants/")
        return data.get('variants', [])

    def create_variant(self, product_id, color: str, size: Optional[str] = None) -> Dict:
        payload = {'color': color}
        if size:
            payload['size'] = size
        data = self._request('POST', f"/products/{product_id}/variants/", json=payload)
        return data['variant']

    # Accounting

    def list_payment_accounts(self, sub_type: Optional[str] = None) -> List[Dict]:
        params = {'sub_type': sub_type} if sub_type else None
        data = self._request('GET', '/accounting/accounts/payment-accounts/', params=params)
        return data.get('accounts', [])

    # Purchasing

    def settlement_preview(self, payload: Dict) -> Dict:
        return self._request('POST', '/purchase-invoices/settlement-preview/', json=payload)

    def create_purchase_invoice(self, payload: Dict) -> Dict:
        return self._request('POST', '/purchase-invoices/with-products/', json=payload)
