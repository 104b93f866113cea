import os
import re

from dotenv import find_dotenv, load_dotenv


# Load environment variables with .env, .env.dev/.env.prod support
def _load_env_files() -> None:
    """
    Load .env files in this order:
    1) Base .env (if present)
    2) Explicit file via ENV_FILE (stops here when found)
    3) .env.<environment> inferred from ENVIRONMENT/ENV, with dev/prod/stg aliases
    OS environment variables always win.
    """
    base_path = find_dotenv(".env", usecwd=True)
    if base_path:
        load_dotenv(base_path, override=False)

    explicit = os.environ.get("ENV_FILE")
    if explicit:
        explicit_path = explicit if os.path.isabs(explicit) else find_dotenv(explicit, usecwd=True)
        if explicit_path:
            load_dotenv(explicit_path, override=False)
            return

    env_name = os.environ.get("ENVIRONMENT") or os.environ.get("ENV")
    if env_name:
        slug = str(env_name).strip().lower()
        alias = {"dev": "development", "prod": "production", "stg": "staging"}
        resolved = alias.get(slug, slug)
        for candidate in (f".env.{resolved}", f".env.{slug}"):
            path = find_dotenv(candidate, usecwd=True)
            if path:
                load_dotenv(path, override=False)
                break


_load_env_files()

# === Environment Configuration ===
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")  # development, staging, production
IS_PRODUCTION = ENVIRONMENT.strip().lower() in ("prod", "production")

# === Server Configuration ===
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")


def _get_int_env(var_name: str, default_value: int) -> int:
    """
    Parse an integer environment variable.
    Trailing semicolons are ignored and the first integer in the string is used
    as a fallback; anything unparseable yields the default.
    """
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return int(text)
    except ValueError:
        match = re.search(r"[-+]?\d+", text or "")
        if match:
            return int(match.group(0))
    return int(default_value)


def _get_float_env(var_name: str, default_value: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None:
        return float(default_value)
    try:
        return float(str(raw).strip().rstrip(";"))
    except ValueError:
        return float(default_value)


SERVER_PORT = _get_int_env("SERVER_PORT", 8800)


# === CORS Configuration ===
def _get_cors_origins() -> list[str]:
    """
    CORS origins from env, comma separated. Defaults to the admin and client dev servers.
      CORS_ORIGINS="http://localhost:3000,http://localhost:3001"
    """
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:3000", "http://localhost:3001"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ORIGINS = _get_cors_origins()

# === Database Configuration ===
MONGODB_URI = os.environ.get("MONGODB_URI")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "tourism")

# === JWT Configuration ===
# Tokens are issued by the accounts service; this API only verifies them.
JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key-change-this-in-production")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

# === Booking Protocol ===
# A guide lease older than this is treated as abandoned and can be taken over
BOOKING_LOCK_TTL_SECONDS = _get_int_env("BOOKING_LOCK_TTL_SECONDS", 10)
# How long a request waits for a busy guide before answering 409
BOOKING_LOCK_WAIT_SECONDS = _get_float_env("BOOKING_LOCK_WAIT_SECONDS", 3.0)

# === Application Settings ===
APP_NAME = "Tourism Booking API"
APP_VERSION = "1.0.0"
