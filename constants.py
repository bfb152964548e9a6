import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5000))
RELOAD = os.getenv("RELOAD", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

DEFAULT_CODE = os.getenv("DEFAULT_CODE", 'console.log("Hello from JavaScript!");')

# Messages queued per connection before a slow consumer is evicted
OUTBOX_MAX_SIZE = int(os.getenv("OUTBOX_MAX_SIZE", 256))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
