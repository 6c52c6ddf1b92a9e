"""Captcha adapters - Upstream human-verification services."""

from .prosopo import ProsopoCaptchaVerifier

__all__ = ["ProsopoCaptchaVerifier"]
