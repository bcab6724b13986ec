"""
Drug Interaction Engine - Configuration Settings
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent.parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

# API Settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_TITLE = "Drug Identity Resolution & Interaction Engine"
API_VERSION = "1.0.0"

# Admin token for overlay and alias edits (no token configured = edits refused)
CURATED_EDITOR_TOKEN = os.getenv("CURATED_EDITOR_TOKEN") or os.getenv("ADMIN_API_TOKEN") or None

# Brand alias table
BRAND_ALIAS_FILE = Path(os.getenv("BRAND_ALIAS_FILE", str(DATA_DIR / "brand_aliases.json")))
BRAND_ALIAS_RELOAD_SECONDS = float(os.getenv("BRAND_ALIAS_RELOAD_SECONDS", "300"))  # 5 minutes

# Unknown-term telemetry
UNKNOWN_TERM_LOG = Path(os.getenv("ALIAS_FEEDBACK_FILE", str(LOG_DIR / "unknown-brands.log")))
UNKNOWN_TERM_WINDOW_SECONDS = float(os.getenv("UNKNOWN_TERM_WINDOW_SECONDS", "3600"))
UNKNOWN_TERM_MIN_LENGTH = 2

# External services
RXNAV_BASE_URL = os.getenv("RXNAV_BASE_URL", "https://rxnav.nlm.nih.gov/REST")
OPENFDA_BASE_URL = os.getenv("OPENFDA_BASE_URL", "https://api.fda.gov")
EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "10"))
BRAND_SEARCH_TIMEOUT_SECONDS = float(os.getenv("BRAND_SEARCH_TIMEOUT_SECONDS", "3"))

# Preferred RxNorm term types, best first
PREFERRED_CONCEPT_TYPES = ("IN", "BN", "SCD")

# Suggestions
SUGGESTION_MIN_QUERY = 2
SUGGESTION_DEFAULT_LIMIT = 8
SUGGESTION_MAX_LIMIT = 20

# Brand alias search
BRAND_SEARCH_MAX_RESULTS = 50

# Interaction check
CHECK_MAX_DRUGS = 50

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Feature Flags
ENABLE_EXTERNAL_INTERACTIONS = os.getenv("ENABLE_EXTERNAL_INTERACTIONS", "true").lower() == "true"
ENABLE_EXTERNAL_BRAND_SEARCH = os.getenv("ENABLE_EXTERNAL_BRAND_SEARCH", "true").lower() == "true"
