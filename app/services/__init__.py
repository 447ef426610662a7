# Services package
from app.services.shopify_service import shopify_service
from app.services.pick_service import RoastersChoiceService

roasters_choice_service = RoastersChoiceService(shopify=shopify_service)

__all__ = [
    "shopify_service",
    "roasters_choice_service",
]
