"""
Device fingerprint tests - user agent parsing and client address resolution
"""
from django.test import RequestFactory, SimpleTestCase

from accounts.services.fingerprint import generate_device_fingerprint, get_client_ip, parse_device_info

CHROME_WINDOWS = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
SAFARI_IPHONE = (
    'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
    '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
)
SAFARI_IPAD = (
    'Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
    '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
)


class DeviceInfoTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_desktop_browser(self):
        info = parse_device_info(self.factory.get('/', HTTP_USER_AGENT=CHROME_WINDOWS))
        self.assertEqual(info['device_name'], 'Chrome on Windows')
        self.assertEqual(info['device_type'], 'desktop')
        self.assertTrue(info['browser'].startswith('Chrome 120'))
        self.assertEqual(info['user_agent'], CHROME_WINDOWS)

    def test_phone_and_tablet(self):
        phone = parse_device_info(self.factory.get('/', HTTP_USER_AGENT=SAFARI_IPHONE))
        tablet = parse_device_info(self.factory.get('/', HTTP_USER_AGENT=SAFARI_IPAD))
        self.assertEqual(phone['device_type'], 'mobile')
        self.assertTrue(phone['device_name'].endswith('on iOS'))
        self.assertEqual(tablet['device_type'], 'tablet')

    def test_missing_user_agent(self):
        info = parse_device_info(self.factory.get('/'))
        self.assertEqual(info['device_name'], 'Unknown Browser on Unknown OS')
        self.assertEqual(info['device_type'], 'desktop')

    def test_fingerprint_depends_on_client_hints(self):
        """Test that the same browser on a different screen is a different device"""
        request = self.factory.get('/', HTTP_USER_AGENT=CHROME_WINDOWS)
        laptop = generate_device_fingerprint(request, {'screenResolution': '1920x1080'})
        monitor = generate_device_fingerprint(request, {'screenResolution': '2560x1440'})

        self.assertEqual(len(laptop), 64)
        self.assertEqual(laptop, generate_device_fingerprint(request, {'screenResolution': '1920x1080'}))
        self.assertNotEqual(laptop, monitor)


class ClientIpTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_first_forwarded_address(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.7')

    def test_malformed_headers_fall_back(self):
        """Test that unparseable proxy headers are skipped in favour of REMOTE_ADDR"""
        request = self.factory.get(
            '/',
            HTTP_X_FORWARDED_FOR='not-an-ip, 10.0.0.1',
            HTTP_X_REAL_IP='also bad',
            REMOTE_ADDR='192.168.1.20',
        )
        self.assertEqual(get_client_ip(request), '192.168.1.20')

    def test_real_ip_header(self):
        request = self.factory.get('/', HTTP_X_REAL_IP='2001:db8::1')
        self.assertEqual(get_client_ip(request), '2001:db8::1')

    def test_nothing_parses(self):
        request = self.factory.get('/', REMOTE_ADDR='')
        self.assertIsNone(get_client_ip(request))
