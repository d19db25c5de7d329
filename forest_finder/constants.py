"""Constants for forest search, grid sampling and address lookup."""

# Mean Earth radius used for every distance calculation
EARTH_RADIUS_METERS = 6_371_000.0

# Search defaults
DEFAULT_RADIUS_METERS = 5000.0
DEFAULT_LIMIT = 200
DEFAULT_MIN_DISTANCE_CHANGE_METERS = 50.0

# Grid sampling
METERS_PER_DEGREE = 111_000.0
MIN_CELL_SIZE_DEG = 0.001  # ~111 m
GRID_SCHEMES = ("adaptive", "tiered")

# Tiered cell sizes: (radius above which the tier applies, cell size in degrees)
GRID_TIERS = [
    (100_000.0, 0.1),
    (50_000.0, 0.05),
]
GRID_TIER_FALLBACK_DEG = 0.01

# Address lookup
ADDRESS_CACHE_PRECISION = 4  # decimal degrees, ~11 m
ADDRESS_BATCH_SIZE = 10
GSI_REVERSE_GEOCODER_URL = "https://mreversegeocoder.gsi.go.jp/reverse-geocoder/LonLatToAddress"
GSI_TIMEOUT_SECONDS = 10.0
LOCALGOVJP_URL = "https://code4fukui.github.io/localgovjp/localgovjp.json"
USER_AGENT = "Forest-Finder/1.0"

# Walking speed used by the real-estate industry in Japan (80 m per minute)
WALKING_METERS_PER_MINUTE = 80
