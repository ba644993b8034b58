from __future__ import annotations

import re
from typing import Optional

import tldextract


# Bundled public-suffix snapshot only; no HTTP fetch at runtime
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lower-case and trim. Two emails are the same identity iff these keys are equal."""
    if email is None:
        return None
    key = email.strip().lower()
    return key or None


def normalize_profile_url(url: Optional[str]) -> Optional[str]:
    """Canonical comparison key for a professional-profile URL.

    Strips the scheme, a leading ``www.`` and a trailing slash, and lower-cases,
    so ``https://www.linkedin.com/in/janedoe/`` and ``linkedin.com/in/janedoe``
    share one key. Apply to stored values too; never compare raw strings.
    """
    if url is None:
        return None
    key = url.strip().lower()
    key = _SCHEME_RE.sub("", key)
    if key.startswith("www."):
        key = key[len("www."):]
    key = key.rstrip("/")
    return key or None


def normalize_text_key(value: Optional[str]) -> Optional[str]:
    """Case-insensitive key for names and company names (Unicode casefold, not ASCII-only)."""
    if value is None:
        return None
    key = value.strip().casefold()
    return key or None


def normalize_company_domain(domain: Optional[str]) -> Optional[str]:
    """Join key for company domains: bare host, lower-case, no scheme/www/path."""
    if not domain:
        return None
    text = _SCHEME_RE.sub("", domain.strip().lower())
    if text.startswith("www."):
        text = text[len("www."):]
    text = text.split("/", 1)[0]
    return text or None


def extract_apex_domain(url_or_domain: Optional[str]) -> Optional[str]:
    if not url_or_domain:
        return None
    text = str(url_or_domain).strip().lower()
    if not text.startswith("http://") and not text.startswith("https://"):
        text = f"http://{text}"
    ext = _EXTRACT(text)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return None
