import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_platform_test"),
}

QR_CONFIG = {
    "ttl_minutes": 15,
    "image_size": 256,
    "error_correction": "M",
    "border": 1,
    "dark_color": "#FF6B35",
    "light_color": "#FFFFFF",
}

DEBUG = False
TESTING = True
LOG_LEVEL = "DEBUG"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
