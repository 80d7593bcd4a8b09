"""
Authentication: user sessions and the scheduled-trigger secret.
"""
from betterdoit.auth.session import SessionResolver, SignedTokenResolver, verify_cron_secret

__all__ = ["SessionResolver", "SignedTokenResolver", "verify_cron_secret"]
