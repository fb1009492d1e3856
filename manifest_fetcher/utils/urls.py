"""
Utilities for building the frontdoor and resource URLs of an org.
"""

from urllib.parse import quote, urlencode, urlparse

from manifest_fetcher.models.config import DEFAULT_AUTH_PATH, DEFAULT_RESOURCE_TEMPLATE

# Salesforce sends unauthenticated browsers here, e.g. "/?ec=302&startURL=..."
_LOGIN_MARKERS = ("ec=302", "/login.jsp", "/secur/login")


def build_frontdoor_url(
    instance_url: str, access_token: str, auth_path: str = DEFAULT_AUTH_PATH
) -> str:
    """
    Builds the one-time login URL that exchanges an access token for a session.

    Session ids contain '!', which the frontdoor endpoint accepts unescaped.
    """
    query = urlencode({"sid": access_token}, safe="!")
    return f"{instance_url.rstrip('/')}{auth_path}?{query}"


def build_resource_url(
    instance_url: str, target: str, template: str = DEFAULT_RESOURCE_TEMPLATE
) -> str:
    """Builds the setup page URL for a Data Kit, encoding the name as one segment."""
    path = template.format(target=quote(target, safe=""))
    return f"{instance_url.rstrip('/')}{path}"


def is_login_page(url: str) -> bool:
    """True when the URL looks like the org's interactive login page."""
    parsed = urlparse(url)
    if parsed.hostname and parsed.hostname.startswith("login."):
        return True
    location = f"{parsed.path}?{parsed.query}"
    return any(marker in location for marker in _LOGIN_MARKERS)


def is_authenticated_url(url: str, auth_path: str = DEFAULT_AUTH_PATH) -> bool:
    """True once the browser has left the frontdoor endpoint for a real page."""
    if not url or url == "about:blank":
        return False
    return auth_path not in urlparse(url).path and not is_login_page(url)
