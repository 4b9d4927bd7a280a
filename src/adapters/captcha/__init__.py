"""CAPTCHA adapters - Human verification providers."""

from .recaptcha import NullCaptchaVerifier, RecaptchaVerifier

__all__ = ["NullCaptchaVerifier", "RecaptchaVerifier"]
