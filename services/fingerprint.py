"""
Device fingerprinting

The basic fingerprint is a 32-bit rolling hash (hash * 31 + code unit, wrapped
to a signed 32-bit integer) over the pipe-joined tuple
(user agent, language, timezone offset, screen WxH, core count), rendered as
the hex of its absolute value. It is a best-effort device identifier, not a
credential: distinct devices can collide.
"""
import re
from typing import Any, Callable, Dict, Optional, Union

HEADLESS_BROWSER = 'HEADLESS_BROWSER'
UNAVAILABLE = 'UNAVAILABLE'

BOT_USER_AGENT_PATTERNS = [
    re.compile(r'bot|crawler|spider|scraper|curl|wget|python|java(?!script)|perl|ruby|php|asp|node|requests|http-client|axios', re.I),
    re.compile(r'headless|phantom|selenium|playwright|puppeteer|nightmarejs', re.I),
    re.compile(r'googlebot|bingbot|slurp|duckduckbot|baiduspider|yandexbot|sogoubot|exabot', re.I),
]


class ProbeResult:
    """Outcome of probing an optional rendering capability"""

    AVAILABLE = 'available'
    UNAVAILABLE = 'unavailable'
    ERRORED = 'errored'

    def __init__(self, status: str, value: Optional[str] = None, error: Optional[str] = None):
        self.status = status
        self.value = value
        self.error = error

    @classmethod
    def available(cls, value: str) -> 'ProbeResult':
        return cls(cls.AVAILABLE, value=value)

    @classmethod
    def unavailable(cls) -> 'ProbeResult':
        return cls(cls.UNAVAILABLE)

    @classmethod
    def errored(cls, error: str) -> 'ProbeResult':
        return cls(cls.ERRORED, error=error)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ProbeResult':
        """Build from a client-reported probe, e.g. {"status": "available", "value": "data:..."}"""
        if not isinstance(data, dict) or not data:
            return cls.unavailable()
        status = data.get('status')
        if status == cls.AVAILABLE and data.get('value'):
            return cls.available(str(data['value']))
        if status == cls.ERRORED:
            return cls.errored(str(data.get('error') or 'unknown'))
        return cls.unavailable()

    @property
    def is_available(self) -> bool:
        return self.status == self.AVAILABLE

    def __eq__(self, other):
        if not isinstance(other, ProbeResult):
            return NotImplemented
        return (self.status, self.value, self.error) == (other.status, other.value, other.error)

    def __repr__(self):
        return f"ProbeResult({self.status!r}, value={self.value!r}, error={self.error!r})"


Probe = Callable[[], Union[ProbeResult, str, None]]


def run_probe(probe: Optional[Probe]) -> ProbeResult:
    """Run a capability probe, turning absence and exceptions into tagged results"""
    if probe is None:
        return ProbeResult.unavailable()
    try:
        result = probe()
    except Exception as e:
        return ProbeResult.errored(str(e) or e.__class__.__name__)
    if isinstance(result, ProbeResult):
        return result
    if result is None:
        return ProbeResult.unavailable()
    return ProbeResult.available(str(result))


class ClientEnvironment:
    """Attributes reported by (or inferred for) one client"""

    def __init__(self, user_agent='', language='', timezone_offset=0, screen_width=None,
                 screen_height=None, hardware_concurrency=None, url='', timezone=None,
                 platform=None, cookies_enabled=None, do_not_track=None, max_touch_points=None,
                 vendor=None, device_memory=None, color_depth=None, pixel_depth=None):
        self.user_agent = user_agent or ''
        self.language = language or ''
        self.timezone_offset = timezone_offset
        self.screen_width = screen_width
        self.screen_height = screen_height
        self.hardware_concurrency = hardware_concurrency
        self.url = url or ''
        self.timezone = timezone
        self.platform = platform
        self.cookies_enabled = cookies_enabled
        self.do_not_track = do_not_track
        self.max_touch_points = max_touch_points
        self.vendor = vendor
        self.device_memory = device_memory
        self.color_depth = color_depth
        self.pixel_depth = pixel_depth

    @classmethod
    def from_request(cls, request, data: Optional[Dict[str, Any]] = None) -> 'ClientEnvironment':
        """
        Build from a Flask request

        Browser-only attributes come from the JSON ``client`` object posted by
        the page; user agent, language and URL fall back to request headers.
        """
        data = _as_dict(data)
        screen = _as_dict(data.get('screen'))
        accept_language = request.accept_languages.best or ''
        return cls(
            user_agent=_as_str(data.get('userAgent')) or request.headers.get('User-Agent', ''),
            language=_as_str(data.get('language')) or accept_language,
            timezone_offset=_as_int(data.get('timezoneOffset'), 0),
            screen_width=_as_int(screen.get('width')),
            screen_height=_as_int(screen.get('height')),
            hardware_concurrency=_as_int(data.get('hardwareConcurrency')),
            url=_as_str(data.get('url')) or request.referrer or request.url,
            timezone=data.get('timezone'),
            platform=data.get('platform'),
            cookies_enabled=data.get('cookiesEnabled'),
            do_not_track=data.get('doNotTrack'),
            max_touch_points=_as_int(data.get('maxTouchPoints')),
            vendor=data.get('vendor'),
            device_memory=data.get('deviceMemory'),
            color_depth=_as_int(screen.get('colorDepth')),
            pixel_depth=_as_int(screen.get('pixelDepth')),
        )


def _as_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_str(value):
    return value if isinstance(value, str) else None


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def rolling_hash(text: str) -> int:
    """Signed 32-bit hash over the UTF-16 code units of text"""
    h = 0
    encoded = text.encode('utf-16-le', 'surrogatepass')
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return h


def _fingerprint_components(env: ClientEnvironment):
    width = '' if env.screen_width is None else env.screen_width
    height = '' if env.screen_height is None else env.screen_height
    return [
        env.user_agent,
        env.language,
        str(env.timezone_offset if env.timezone_offset is not None else ''),
        f"{width}x{height}",
        str(env.hardware_concurrency) if env.hardware_concurrency else 'unknown',
    ]


def basic_fingerprint(env: ClientEnvironment) -> str:
    """Derive the device fingerprint; identical attributes give identical output"""
    return format(abs(rolling_hash('|'.join(_fingerprint_components(env)))), 'x')


class ExtendedFingerprint:
    """Basic fingerprint plus descriptive attributes and rendering probes"""

    def __init__(self, env: ClientEnvironment, basic: str, canvas: str, webgl: str):
        self.env = env
        self.basic = basic
        self.canvas = canvas
        self.webgl = webgl

    @property
    def has_canvas_issue(self) -> bool:
        return self.canvas == HEADLESS_BROWSER

    @property
    def has_webgl_issue(self) -> bool:
        return self.webgl == UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        env = self.env
        return {
            'basic': self.basic,
            'userAgent': env.user_agent,
            'timezone': env.timezone,
            'language': env.language,
            'platform': env.platform,
            'cookiesEnabled': env.cookies_enabled,
            'doNotTrack': env.do_not_track,
            'maxTouchPoints': env.max_touch_points,
            'vendor': env.vendor,
            'hardwareConcurrency': env.hardware_concurrency,
            'deviceMemory': env.device_memory,
            'screen': {
                'width': env.screen_width,
                'height': env.screen_height,
                'colorDepth': env.color_depth,
                'pixelDepth': env.pixel_depth,
            },
            'canvas': self.canvas,
            'webgl': self.webgl,
        }


def advanced_fingerprint(env: ClientEnvironment, canvas_probe: Optional[Probe] = None,
                         webgl_probe: Optional[Probe] = None) -> ExtendedFingerprint:
    """
    Fingerprint with 2-D canvas and WebGL renderer probes

    A canvas probe that is absent or fails is recorded as HEADLESS_BROWSER and
    a WebGL probe that is absent or fails as UNAVAILABLE.
    """
    canvas = run_probe(canvas_probe)
    webgl = run_probe(webgl_probe)
    return ExtendedFingerprint(
        env,
        basic=basic_fingerprint(env),
        canvas=canvas.value if canvas.is_available else HEADLESS_BROWSER,
        webgl=webgl.value if webgl.is_available else UNAVAILABLE,
    )


def detect_bot_user_agent(user_agent: str) -> bool:
    """True when the user agent names a crawler, scripting client or automation tool"""
    return any(pattern.search(user_agent or '') for pattern in BOT_USER_AGENT_PATTERNS)
