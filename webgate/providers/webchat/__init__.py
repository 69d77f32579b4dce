"""
WebChat - browser-authenticated web model clients.

Currently Gemini Web: cookies from config or the cached browser login,
curl_cffi transport with Chrome impersonation.
"""

from .auth import WebChatAuth, load_auth, read_cached_cookies, save_auth
from .client import GeminiChatSession, GeminiWebClient
from .parsing import Candidate, ModelOutput

__all__ = [
    "WebChatAuth",
    "load_auth",
    "save_auth",
    "read_cached_cookies",
    "GeminiWebClient",
    "GeminiChatSession",
    "Candidate",
    "ModelOutput",
]
