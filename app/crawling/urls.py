"""
URL canonicalization shared by discovery and normalization.

Discovery and reconciliation must agree on listing identity, so every
component canonicalizes through `canonicalize_url`.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}
ALLOWED_SCHEMES = frozenset({"http", "https"})


def canonicalize_url(url: str) -> str:
    """
    Return the canonical form of an absolute URL.

    Lowercases scheme and host, drops the default port, the fragment and
    any userinfo, sorts query parameters and strips a trailing slash from
    non-root paths.
    """

    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        raise ValueError(f"Cannot canonicalize non-absolute URL '{url}'.")

    try:
        port = parts.port
    except ValueError as exc:
        raise ValueError(f"Invalid port in URL '{url}'.") from exc

    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"

    path = parts.path or "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"

    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, path, query, ""))


def resolve_url(base_url: str, href: str) -> str | None:
    """
    Resolve `href` against `base_url`, returning None for non-http(s) targets.
    """

    candidate = href.strip()
    if not candidate:
        return None
    try:
        absolute = urljoin(base_url, candidate)
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        return None
    return absolute


def host_of(url: str) -> str:
    parts = urlsplit(url)
    return (parts.hostname or parts.path or "").lower()


def same_site(url: str, base_url: str) -> bool:
    """
    Whether `url` lives on the base URL's host, ignoring a leading `www.`.
    """

    def _bare(host: str) -> str:
        return host[4:] if host.startswith("www.") else host

    return _bare(host_of(url)) == _bare(host_of(base_url))
