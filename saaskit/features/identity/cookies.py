"""
Supabase SSR cookie encoding.

The browser-side Supabase client stores the PKCE verifier in
`sb-<ref>-auth-token-code-verifier` and expects the session in
`sb-<ref>-auth-token`, split into `.0`, `.1`, ... chunks when large.
Values are either raw (URL-encoded) JSON or `base64-` prefixed base64url JSON.
"""
import base64
import json
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import unquote, urlparse

BASE64_PREFIX = "base64-"
MAX_CHUNK_SIZE = 3180
VERIFIER_SUFFIX = "-code-verifier"


def storage_key_for(supabase_url: str, override: Optional[str] = None) -> str:
    """Cookie name holding the session, e.g. sb-abcd1234-auth-token."""
    if override:
        return override
    host = urlparse(supabase_url).hostname or ""
    project_ref = host.split(".")[0] if host else "local"
    return f"sb-{project_ref}-auth-token"


def _b64url_decode(value: str) -> str:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding).decode("utf-8")


def _b64url_encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cookie_value(raw: Optional[str]) -> Optional[str]:
    """Decode a Supabase cookie value into the stored string."""
    if not raw:
        return None
    value = unquote(raw)
    if value.startswith(BASE64_PREFIX):
        try:
            value = _b64url_decode(value[len(BASE64_PREFIX):])
        except (ValueError, UnicodeDecodeError):
            return None
    # Stored items are JSON-encoded strings
    if value.startswith('"'):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return None
        return decoded if isinstance(decoded, str) else None
    return value


def read_chunked(cookies: Mapping[str, str], name: str) -> Optional[str]:
    """Read a cookie that may have been split into numbered chunks."""
    if name in cookies:
        return cookies[name]
    chunks: List[str] = []
    index = 0
    while f"{name}.{index}" in cookies:
        chunks.append(cookies[f"{name}.{index}"])
        index += 1
    return "".join(chunks) if chunks else None


def read_code_verifier(cookies: Mapping[str, str], storage_key: str) -> Optional[str]:
    """PKCE verifier for the pending flow, without the redirect-type suffix."""
    stored = decode_cookie_value(read_chunked(cookies, storage_key + VERIFIER_SUFFIX))
    if not stored:
        return None
    # Stored as "<verifier>" or "<verifier>/PASSWORD_RECOVERY"
    return stored.split("/", 1)[0] or None


def encode_session_cookies(storage_key: str, session_payload: Dict) -> List[Tuple[str, str]]:
    """(name, value) pairs for a session, chunked when over the cookie size limit."""
    encoded = BASE64_PREFIX + _b64url_encode(json.dumps(session_payload, separators=(",", ":")))
    if len(encoded) <= MAX_CHUNK_SIZE:
        return [(storage_key, encoded)]
    return [
        (f"{storage_key}.{i}", encoded[start:start + MAX_CHUNK_SIZE])
        for i, start in enumerate(range(0, len(encoded), MAX_CHUNK_SIZE))
    ]
