# verifymail/utils/__init__.py
"""
Módulo de utilidades del servicio de verificación.
Incluye el ledger de OTPs, el rate limiter, el barrido periódico y el middleware de logging.
"""

from .middleware_logger import LoggingMiddleware
from .otp_manager import Challenge, ConsumeResult, OTPLedger
from .rate_limiter import RateLimiter

__all__ = ['LoggingMiddleware', 'Challenge', 'ConsumeResult', 'OTPLedger', 'RateLimiter']
