"""
Device fingerprinting helpers.
The fingerprint is a stable hash of the user agent plus client hints sent by the frontend.
"""
import hashlib

from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address
from user_agents import parse

UNKNOWN_FAMILY = 'Other'


def _header(request, name):
    return request.META.get(name, '') or ''


def generate_device_fingerprint(request, client_hints=None):
    """SHA-256 of user agent, accept headers, and the client hints posted at login."""
    hints = client_hints or {}
    parts = [
        _header(request, 'HTTP_USER_AGENT'),
        _header(request, 'HTTP_ACCEPT_LANGUAGE'),
        _header(request, 'HTTP_ACCEPT_ENCODING'),
        str(hints.get('screenResolution') or ''),
        str(hints.get('timezone') or ''),
        str(hints.get('colorDepth') or ''),
    ]
    return hashlib.sha256('|'.join(parts).encode('utf-8')).hexdigest()


def parse_device_info(request, client_hints=None):
    """Device name/type/browser plus fingerprint for a login request."""
    user_agent = _header(request, 'HTTP_USER_AGENT')
    parsed = parse(user_agent)

    browser_name = parsed.browser.family
    if browser_name == UNKNOWN_FAMILY:
        browser_name = 'Unknown Browser'
    os_name = parsed.os.family
    if os_name == UNKNOWN_FAMILY:
        os_name = 'Unknown OS'

    if parsed.is_tablet:
        device_type = 'tablet'
    elif parsed.is_mobile:
        device_type = 'mobile'
    else:
        device_type = 'desktop'

    browser = browser_name
    if parsed.browser.version_string:
        browser = f"{browser} {parsed.browser.version_string}"

    return {
        'device_name': f"{browser_name} on {os_name}",
        'device_type': device_type,
        'browser': browser,
        'user_agent': user_agent,
        'fingerprint': generate_device_fingerprint(request, client_hints),
    }


def _valid_ip(value):
    value = value.strip()
    if not value:
        return None
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def get_client_ip(request):
    """First well-formed address from the proxy headers, then REMOTE_ADDR. None when nothing parses."""
    candidates = [
        _header(request, 'HTTP_X_FORWARDED_FOR').split(',')[0],
        _header(request, 'HTTP_X_REAL_IP'),
        _header(request, 'REMOTE_ADDR'),
    ]
    for candidate in candidates:
        ip = _valid_ip(candidate)
        if ip:
            return ip
    return None
