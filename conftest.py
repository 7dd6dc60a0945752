import os

# Settings are cached on first import, so test defaults must be in place
# before anything under libs/ or services/ is loaded.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "test-server-key")
os.environ.setdefault("TIMEZONE", "Asia/Jakarta")
os.environ.setdefault("STORE_NAME", "5SCENT")
