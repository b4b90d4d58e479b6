"""Warden — authentication and credential lifecycle service.

Password login with an emailed second factor, rotating JWT session
tokens, account confirmation and password reset, plus a background
reaper that purges every time-bounded record once it expires.
"""

__version__ = "0.1.0"
