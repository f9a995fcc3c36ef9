"""
HTTP Signatures (draft-cavage, rsa-sha256) for federation requests.

Outgoing requests are signed with the sending actor's private key over
``(request-target) host date`` plus ``digest`` when there is a body. The
receiver rebuilds the same signing string and checks it against the public
key published in the sender's actor document.
"""

import base64
import hashlib
import logging
import re
from email.utils import formatdate
from typing import Any
from urllib.parse import urlsplit

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHM = "rsa-sha256"

_PARAM_RE = re.compile(r'\s*([A-Za-z]+)\s*=\s*"([^"]*)"\s*')


def _request_target(method: str, url: str) -> str:
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return f"{method.lower()} {path}"


def body_digest(body: bytes | str) -> str:
    """``SHA-256=<base64>`` digest header value for a request body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return "SHA-256=" + base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def _signing_string(
    signed_headers: list[str], method: str, url: str, headers: dict[str, str]
) -> str:
    lines = []
    for name in signed_headers:
        if name == "(request-target)":
            lines.append(f"(request-target): {_request_target(method, url)}")
        else:
            value = headers.get(name)
            if value is None:
                raise KeyError(name)
            lines.append(f"{name}: {value}")
    return "\n".join(lines)


def sign_request(
    method: str,
    url: str,
    private_key_pem: str,
    key_id: str,
    headers: dict[str, str] | None = None,
    body: bytes | str | None = None,
) -> dict[str, str]:
    """
    Sign an outgoing request.

    Args:
        method: HTTP method
        url: Full request URL
        private_key_pem: Sender's PKCS8 PEM private key
        key_id: Sender's key id, ``<actor_url>#main-key``
        headers: Headers to send; not modified
        body: Request body, if any; adds a ``digest`` header

    Returns:
        Lower-cased headers including ``date``, ``host``, optionally
        ``digest``, and ``signature``
    """
    signed = {k.lower(): v for k, v in (headers or {}).items()}
    signed.setdefault("date", formatdate(usegmt=True))
    signed.setdefault("host", urlsplit(url).netloc)

    signed_headers = ["(request-target)", "host", "date"]
    if body is not None:
        signed["digest"] = body_digest(body)
        signed_headers.append("digest")

    private_key = serialization.load_pem_private_key(
        private_key_pem.encode("ascii"), password=None
    )
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError("HTTP signatures need an RSA private key")

    message = _signing_string(signed_headers, method, url, signed).encode("utf-8")
    signature = private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    signature_b64 = base64.b64encode(signature).decode("ascii")

    signed["signature"] = (
        f'keyId="{key_id}",algorithm="{SIGNATURE_ALGORITHM}",'
        f'headers="{" ".join(signed_headers)}",signature="{signature_b64}"'
    )
    return signed


def parse_signature_header(value: str) -> dict[str, str]:
    """
    Split a Signature header into its parameters.

    Example:
        >>> parse_signature_header('keyId="k",headers="date",signature="c2ln"')
        {'keyId': 'k', 'headers': 'date', 'signature': 'c2ln'}
    """
    params: dict[str, str] = {}
    for match in _PARAM_RE.finditer(value or ""):
        params[match.group(1)] = match.group(2)
    return params


def verify_request(
    method: str,
    url: str,
    headers: dict[str, Any],
    public_key_pem: str,
    body: bytes | str | None = None,
) -> bool:
    """
    Check the Signature header of an incoming request.

    When body is given, the request must carry a signed ``digest`` header
    that matches it.

    Returns:
        True if the signature is valid, False for anything else
    """
    try:
        lowered = {k.lower(): str(v) for k, v in headers.items()}
        params = parse_signature_header(lowered.get("signature", ""))
        if "signature" not in params:
            return False
        algorithm = params.get("algorithm", SIGNATURE_ALGORITHM)
        if algorithm not in (SIGNATURE_ALGORITHM, "hs2019"):
            return False
        signed_headers = params.get("headers", "date").split()
        if body is not None:
            if "digest" not in signed_headers:
                return False
            if lowered.get("digest") != body_digest(body):
                return False
        message = _signing_string(signed_headers, method, url, lowered).encode("utf-8")

        public_key = serialization.load_pem_public_key(public_key_pem.encode("ascii"))
        if not isinstance(public_key, rsa.RSAPublicKey):
            return False
        public_key.verify(
            base64.b64decode(params["signature"]),
            message,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True
    except (InvalidSignature, UnsupportedAlgorithm, KeyError, ValueError, TypeError) as e:
        logger.debug(f"HTTP signature rejected: {type(e).__name__} {e}")
        return False
