import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barbershop.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# JWT Configuration
JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", f"{SECRET_KEY}:access")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", f"{SECRET_KEY}:refresh")
JWT_ALGORITHM = "HS256"
JWT_ACCESS_EXPIRES_MINUTES = int(os.getenv("JWT_ACCESS_EXPIRES_MINUTES", "15"))
JWT_REFRESH_EXPIRES_DAYS = int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "7"))
# Bump to invalidate every token issued so far
TOKEN_VERSION = int(os.getenv("TOKEN_VERSION", "1"))

# Frontend base URL (CORS defaults)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Middleware toggles
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
DEDUPLICATION_ENABLED = os.getenv("DEDUPLICATION_ENABLED", "true").lower() == "true"
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# Seed Inicial/Medium/Premium/Vetado on startup when the categories table is empty
SEED_DEFAULT_CATEGORIES = os.getenv("SEED_DEFAULT_CATEGORIES", "true").lower() == "true"

# Loyalty tier rules
PROMOTE_TO_MEDIUM_VISITS = int(os.getenv("PROMOTE_TO_MEDIUM_VISITS", "5"))
PROMOTE_TO_PREMIUM_VISITS = int(os.getenv("PROMOTE_TO_PREMIUM_VISITS", "10"))
PENALTY_DEMOTION_THRESHOLD = int(os.getenv("PENALTY_DEMOTION_THRESHOLD", "3"))
RETAIN_MEDIUM_VISITS = int(os.getenv("RETAIN_MEDIUM_VISITS", "3"))
RETAIN_PREMIUM_VISITS = int(os.getenv("RETAIN_PREMIUM_VISITS", "6"))

# ARCA (ex-AFIP) electronic invoicing through AfipSDK
# "dev" uses the AfipSDK shared testing CUIT and needs no certificate
BILLING_ENABLED = os.getenv("BILLING_ENABLED", "false").lower() == "true"
AFIP_API_URL = os.getenv("AFIP_API_URL", "https://app.afipsdk.com/api/v1")
AFIP_ACCESS_TOKEN = os.getenv("AFIP_ACCESS_TOKEN", "")
AFIP_CUIT = int(os.getenv("AFIP_CUIT", "20409378472"))
AFIP_ENVIRONMENT = os.getenv("AFIP_ENVIRONMENT", "dev")  # dev or prod
AFIP_CERT_PATH = os.getenv("AFIP_CERT_PATH")
AFIP_KEY_PATH = os.getenv("AFIP_KEY_PATH")
AFIP_PUNTO_VENTA = int(os.getenv("AFIP_PUNTO_VENTA", "1"))
AFIP_TIMEOUT_SECONDS = float(os.getenv("AFIP_TIMEOUT_SECONDS", "30"))

# Invoice PDF header
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Barbería")
BUSINESS_ADDRESS = os.getenv("BUSINESS_ADDRESS", "")
