"""Bot verification against Google reCAPTCHA"""
import logging
from typing import Optional

import httpx

from teamreg.config import RECAPTCHA_TEST_SECRET


logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    """
    Forward client tokens to the siteverify endpoint

    Any transport failure or malformed answer counts as a failed
    verification. There is no retry.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        verify_url: str = "https://www.google.com/recaptcha/api/siteverify",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def test_mode(self) -> bool:
        return self.secret_key == RECAPTCHA_TEST_SECRET

    async def verify(self, token: Optional[str]) -> bool:
        if not token:
            return False

        if self.test_mode:
            logger.info("🔑 Using reCAPTCHA test keys - verification always passes")
            return True

        try:
            response = await self.client.post(
                self.verify_url,
                data={"secret": self.secret_key or "", "response": token},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ reCAPTCHA verification error: {type(e).__name__}: {e}")
            return False

        if not isinstance(data, dict) or data.get("success") is not True:
            codes = data.get("error-codes") if isinstance(data, dict) else None
            logger.warning(f"❌ reCAPTCHA verification failed | error-codes: {codes}")
            return False

        return True
