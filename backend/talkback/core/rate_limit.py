# talkback/core/rate_limit.py

from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed on the client address; limits themselves live in talkback.config
limiter = Limiter(key_func=get_remote_address)
