"""Protocol constants for the Yeelight LAN control interface."""

from enum import Enum

# Command connection
DEFAULT_COMMAND_PORT = 55443
CRLF = b"\r\n"

# Minimum transition duration accepted by the device, in milliseconds
MIN_DURATION_MS = 30

# Value ranges
BRIGHTNESS_MIN = 0
BRIGHTNESS_MAX = 100
CHANNEL_MIN = 0
CHANNEL_MAX = 255
COLOR_TEMP_MIN = 1700
COLOR_TEMP_MAX = 6500

# Streaming ("music") mode handoff
HANDOFF_POLL_INTERVAL = 0.1  # seconds between listener polls
HANDOFF_POLL_ATTEMPTS = 10

# Discovery (SSDP-like)
MULTICAST_GROUP = "239.255.255.250"
DISCOVERY_PORT = 1982
SEARCH_TARGET = "wifi_bulb"
LOCATION_HEADER = "Location: "
PROBE_MESSAGE = (
    "M-SEARCH * HTTP/1.1\r\n"
    'MAN: "ssdp:discover"\r\n'
    f"ST: {SEARCH_TARGET}\r\n"
)

# Method names
METHOD_SET_BRIGHT = "set_bright"
METHOD_SET_POWER = "set_power"
METHOD_SET_RGB = "set_rgb"
METHOD_SET_CT = "set_ct_abx"
METHOD_TOGGLE = "toggle"
METHOD_SET_MUSIC = "set_music"
METHOD_GET_PROP = "get_prop"
METHOD_NOTIFY_PROPS = "props"


class Effect(str, Enum):
    """Transition effect applied by the device."""
    SUDDEN = "sudden"
    SMOOTH = "smooth"


class PowerState(str, Enum):
    ON = "on"
    OFF = "off"


class SessionMode(str, Enum):
    """Connection mode of a device session."""
    NORMAL = "normal"
    AWAITING_HANDOFF = "awaiting_handoff"
    STREAMING = "streaming"
