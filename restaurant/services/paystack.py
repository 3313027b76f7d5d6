"""Paystack client: transaction initialize/verify and webhook signatures."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import hashlib
import hmac
import logging
import httpx
from restaurant.core.errors import UpstreamError

logger = logging.getLogger(__name__)

@dataclass
class InitializedTransaction:
    authorization_url: str
    reference: str
    access_code: Optional[str] = None

@dataclass
class VerifiedTransaction:
    reference: str
    status: str        # success | failed | abandoned | reversed | ...
    amount_minor: int  # kobo

def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

class PaystackClient:
    def __init__(self, secret_key: str, base_url: str = 'https://api.paystack.co', timeout: float = 10.0,
                 callback_url: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.callback_url = callback_url
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={'Authorization': f'Bearer {self.secret_key}'},
            transport=self._transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            with self._client() as client:
                resp = client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning('paystack %s %s failed: %s', method, path, exc)
            raise UpstreamError('Payment gateway unavailable')
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400 or not body.get('status'):
            message = body.get('message') or resp.text or 'unknown error'
            logger.warning('paystack %s %s -> %s: %s', method, path, resp.status_code, message)
            raise UpstreamError(f'Paystack error: {message}')
        return body.get('data') or {}

    def initialize_transaction(self, email: str, amount: Decimal, metadata: dict) -> InitializedTransaction:
        payload = {'email': email, 'amount': to_minor_units(amount), 'metadata': metadata}
        if self.callback_url:
            payload['callback_url'] = self.callback_url
        data = self._request('POST', '/transaction/initialize', json=payload)
        if not data.get('authorization_url') or not data.get('reference'):
            raise UpstreamError('Paystack error: incomplete initialize response')
        return InitializedTransaction(
            authorization_url=data['authorization_url'],
            reference=data['reference'],
            access_code=data.get('access_code'),
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        data = self._request('GET', f'/transaction/verify/{reference}')
        return VerifiedTransaction(
            reference=data.get('reference') or reference,
            status=str(data.get('status') or ''),
            amount_minor=int(data.get('amount') or 0),
        )

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """Paystack signs the raw webhook body with HMAC-SHA512 of the secret key."""
        if not signature or not self.secret_key:
            return False
        expected = hmac.new(self.secret_key.encode('utf-8'), raw_body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)
