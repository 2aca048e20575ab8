"""Internal constants shared across the library."""

USER_AGENT = "pypothole/1.0"

# ------------------------------------------------------------------
# Geo
# ------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0
MERCATOR_MAX_LAT = 85.0
METERS_PER_DEG_LAT = 111_194.93  # pi * EARTH_RADIUS_M / 180

# ------------------------------------------------------------------
# Deduplication
# ------------------------------------------------------------------

DEDUP_RADIUS_M = 10.0
DEDUP_LAT_BAND_DEG = 0.0001  # ~10 m

# ------------------------------------------------------------------
# Subscriptions
# ------------------------------------------------------------------

NEARBY_LIMIT = 5000
OWNER_LIMIT = 50

# ------------------------------------------------------------------
# Share image
# ------------------------------------------------------------------

MAP_STYLE = "mapbox/navigation-night-v1"
FALLBACK_PIN_URL = "https://potholes.live/icon-192.png"
DEFAULT_TILE_ENDPOINT = "https://potholes.live/.netlify/functions/share-map"
DEFAULT_GEOCODE_ENDPOINT = "https://potholes.live/.netlify/functions/geocode"

# Bengaluru, used when a session has no points.
FALLBACK_CENTER_LAT = 12.9716
FALLBACK_CENTER_LON = 77.5946
FALLBACK_ZOOM = 10.0

SINGLE_POINT_ZOOM = 16.5
MIN_ZOOM = 9.0
MAX_ZOOM = 17.0
ZOOM_PADDING_FACTOR = 1.25
TILE_SIZE = 512
MIN_SPAN_FRACTION = 0.00001

# Instagram story format.
DEFAULT_SHARE_WIDTH = 1080
DEFAULT_SHARE_HEIGHT = 1920
MAP_REGION_TOP = 0.25
MAP_REGION_HEIGHT = 0.55

PATH_STROKE_WIDTH = 5
PATH_STROKE_COLOR = "2196F3"
PATH_STROKE_OPACITY = 0.8
