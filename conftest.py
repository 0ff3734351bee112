import os

# Settings are read at import time by libs.db.config and the rate limiter,
# so the test environment has to be in place before any app module loads.
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["PHONEPE_MERCHANT_ID"] = "MERCHANTUAT"
os.environ["PHONEPE_SALT_KEY"] = "test-salt-key"
os.environ["PHONEPE_SALT_INDEX"] = "1"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
