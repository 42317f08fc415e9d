# API Routes Module
from app.api.routes import (
    users,
    analysis,
    subscriptions,
    webhooks,
)

__all__ = [
    "users",
    "analysis",
    "subscriptions",
    "webhooks",
]
