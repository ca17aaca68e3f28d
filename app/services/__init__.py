"""
                        Services Module

Business logic plus the external collaborators, which follow the hybrid
architecture pattern: each has a Mock (development) and a Real (production)
implementation selected by ENV_MODE.

Services:
    - payment: Stripe Checkout sessions and webhooks
    - identity: Auth0 bearer-token verification
    - storage: Cloudinary restaurant images
    - users / restaurants / search / orders: database-backed stores
"""

from app.services.orders import OrderWorkflow

__all__ = ["OrderWorkflow"]
