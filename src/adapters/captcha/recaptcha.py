"""
reCAPTCHA adapter - Implements CaptchaVerifier protocol.

Posts the widget token to the siteverify endpoint. Any transport or
decoding error counts as a failed verification.
"""

import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaVerifier:
    """Verifies reCAPTCHA tokens with httpx."""

    def __init__(
        self,
        secret: str,
        verify_url: str = DEFAULT_VERIFY_URL,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._secret = secret
        self._verify_url = verify_url
        self._timeout = timeout
        self._client = client

    def verify(self, token: str | None, remote_ip: str | None = None) -> bool:
        """
        Check a reCAPTCHA response token.

        Args:
            token: ``g-recaptcha-response`` value from the form
            remote_ip: Client address, passed along when known

        Returns:
            True only if the provider reports success
        """
        if not token:
            return False

        data = {"secret": self._secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            if self._client is not None:
                response = self._client.post(self._verify_url, data=data, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(self._verify_url, data=data)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("reCAPTCHA verification failed: %s", e)
            return False

        if not payload.get("success", False):
            logger.info("reCAPTCHA rejected token: %s", payload.get("error-codes", []))
            return False
        return True


class NullCaptchaVerifier:
    """Stands in for a CAPTCHA provider when the feature is disabled."""

    def verify(self, token: str | None, remote_ip: str | None = None) -> bool:
        return True
