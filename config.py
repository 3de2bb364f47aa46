import os

from dotenv import load_dotenv

# ============================================================
# ENVIRONMENT (SECURE LOAD)
# ============================================================

# Load the .env file before reading anything from the environment
load_dotenv()

# Analytics endpoint (services-count) and login endpoint live on different hosts
ANALYTICS_BASE_URL = os.environ.get("ANALYTICS_BASE_URL", "https://trueidmapp.askaribank.com.pk").rstrip("/")
AUTH_BASE_URL = os.environ.get("AUTH_BASE_URL", "https://askari-test.truid.ai").rstrip("/")

SERVICES_COUNT_PATH = "/services-count/"
LOGIN_PATH = "/rest-auth/login/"

try:
    REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "30"))
except ValueError:
    print("⚠️ WARNING: REQUEST_TIMEOUT is not a number. Falling back to 30s.")
    REQUEST_TIMEOUT = 30.0

# Empty means every authenticated user may open the funnel page
FUNNEL_ALLOWED_USERNAMES = {
    name.strip()
    for name in os.environ.get("FUNNEL_ALLOWED_USERNAMES", "").split(",")
    if name.strip()
}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ============================================================
# CLIENTS & DATE RANGE
# ============================================================
CLIENT_IDS = (1, 2, 3)

MAX_RANGE_DAYS = 40

# ============================================================
# GLOBAL COLOR PALETTE
# ============================================================
GLOBAL_PALETTE = [
    "#0488BB",  # verified blue
    "#696969",  # not verified gray
    "#ffa502",  # pending amber
    "#d63031",  # drop-off red
    "#2255FF",  # total applications
    "#9BBB59",  # olive green
    "#8064A2",  # muted purple
    "#4F81BD",  # corporate blue
]

VERIFIED_COLOR = GLOBAL_PALETTE[0]
NOT_VERIFIED_COLOR = GLOBAL_PALETTE[1]
PENDING_COLOR = GLOBAL_PALETTE[2]
DROPOFF_COLOR = GLOBAL_PALETTE[3]
TOTAL_STAGE_COLOR = GLOBAL_PALETTE[4]
