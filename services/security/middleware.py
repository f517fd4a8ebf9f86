"""
=====================================================
Craftsman Phone Assistant - Webhook Security
=====================================================
Twilio signature validation for the call entry webhook.
"""

from typing import Mapping, Optional

from fastapi import Request
from twilio.request_validator import RequestValidator
from loguru import logger


class TwilioSignatureValidator:
    """
    Validates Twilio webhook request signatures.

    Twilio signs all webhook requests with the X-Twilio-Signature header,
    computed over the public URL and the POST parameters.
    """

    SIGNATURE_HEADER = "X-Twilio-Signature"

    def __init__(self, auth_token: str, public_domain: str = ""):
        """
        Initialize validator with Twilio auth token.

        Args:
            auth_token: Twilio account auth token
            public_domain: Public host Twilio calls (used behind a proxy)
        """
        self.validator = RequestValidator(auth_token)
        self.public_domain = public_domain

    def signed_url(self, request: Request) -> str:
        """Rebuild the URL that Twilio signed"""
        if self.public_domain:
            domain = self.public_domain.split("://")[-1].rstrip("/")
            base = f"https://{domain}"
        else:
            # Use X-Forwarded headers if behind reverse proxy
            proto = request.headers.get("X-Forwarded-Proto", request.url.scheme)
            host = request.headers.get("X-Forwarded-Host", request.headers.get("Host", ""))
            base = f"{proto}://{host}"

        url = f"{base}{request.url.path}"
        if request.url.query:
            url += f"?{request.url.query}"
        return url

    def validate(self, request: Request, params: Mapping[str, str], url: Optional[str] = None) -> bool:
        """
        Validate a Twilio webhook request.

        Args:
            request: FastAPI request object
            params: Parsed POST form parameters
            url: Optional URL override

        Returns:
            True if signature is valid, False otherwise
        """
        signature = request.headers.get(self.SIGNATURE_HEADER, "")
        if not signature:
            logger.warning("Security: Missing X-Twilio-Signature header")
            return False

        request_url = url or self.signed_url(request)
        is_valid = self.validator.validate(request_url, dict(params), signature)

        if not is_valid:
            logger.warning(f"Security: Invalid Twilio signature for {request_url}")

        return is_valid
