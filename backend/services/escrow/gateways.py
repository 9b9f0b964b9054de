"""
Payment gateway client for card and wallet payments.

The provider is reached over HTTP; any transport error, non-2xx answer or
malformed body surfaces as GatewayFailureError so the caller can leave local
state untouched.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass

import requests

from services.config import get_gateway_config
from services.exceptions import GatewayFailureError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "HTTP_X_PAYMENT_SIGNATURE"


@dataclass
class ProviderCharge:
    reference: str
    payment_url: str = ""


def charge(job, method: str, amount) -> ProviderCharge:
    """
    Open a charge at the provider for ``amount``.

    Returns:
        ProviderCharge with the provider reference and the URL the customer
        pays at
    """
    config = get_gateway_config()
    if not config.api_url:
        raise GatewayFailureError("Payment provider is not configured")

    payload = {
        "amount": str(amount),
        "method": method,
        "order_reference": f"job-{job.id}",
        "return_url": f"{config.return_url}/jobs/{job.id}/payment",
    }
    try:
        response = requests.post(
            f"{config.api_url}/payments",
            json=payload,
            headers={"Authorization": f"Bearer {config.api_key}"},
            timeout=config.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()
        reference = data["reference"]
    except requests.RequestException as exc:
        logger.warning("Gateway charge for job %s failed: %s", job.id, exc)
        raise GatewayFailureError("Payment provider unavailable, please try again")
    except (ValueError, KeyError) as exc:
        logger.warning("Gateway returned an unusable body for job %s: %s", job.id, exc)
        raise GatewayFailureError("Payment provider returned an invalid response")

    logger.info("Gateway charge opened for job %s (ref %s)", job.id, reference)
    return ProviderCharge(reference=str(reference), payment_url=data.get("payment_url") or "")


def sign_payload(body: bytes, secret: str = None) -> str:
    """HMAC-SHA256 hex digest of a raw webhook body."""
    secret = secret if secret is not None else get_gateway_config().webhook_secret
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str) -> bool:
    secret = get_gateway_config().webhook_secret
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign_payload(body, secret), signature)
