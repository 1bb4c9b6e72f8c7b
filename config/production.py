import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_platform"),
}

QR_CONFIG = {
    "ttl_minutes": int(os.getenv("QR_TOKEN_TTL_MINUTES", "15")),
    "image_size": int(os.getenv("QR_IMAGE_SIZE", "256")),
    "error_correction": os.getenv("QR_ERROR_CORRECTION", "M"),
    "border": int(os.getenv("QR_BORDER", "1")),
    "dark_color": os.getenv("QR_DARK_COLOR", "#FF6B35"),
    "light_color": os.getenv("QR_LIGHT_COLOR", "#FFFFFF"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
