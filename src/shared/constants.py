"""Shared constants across the application."""

# Methods accepted by the sync trigger route; OPTIONS answers preflight.
SYNC_TRIGGER_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Response headers for the sync trigger route.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(SYNC_TRIGGER_METHODS),
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

# Celery queue for sync tasks
SYNC_QUEUE = "sync"
