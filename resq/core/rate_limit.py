"""
rate_limit.py — Shared slowapi limiter, keyed by client IP.

Limited routes (limit strings come from Settings):
  POST /api/reports           submit_rate_limit  (default 20/minute)
  GET  /api/analytics/export  export_rate_limit  (default 10/minute)

A route opts in by stacking @limiter.limit(...) under its @router decorator
and taking a `request: Request` parameter. Exceeding the limit answers 429
through the RateLimitExceeded handler registered in resq/main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
