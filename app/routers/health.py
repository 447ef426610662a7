"""Health check and status endpoints."""
from fastapi import APIRouter

from app.config import settings
from app.services import shopify_service

router = APIRouter()


@router.get("/health")
async def health_check():
    """Report configuration status without calling Shopify."""
    return {
        "status": "healthy",
        "shopify_configured": bool(
            settings.shopify_shop and settings.shopify_client_id and settings.shopify_client_secret
        ),
        "shared_secret_configured": bool(settings.rc_shared_secret),
        "token_cached": shopify_service.token_cache.get() is not None,
    }


@router.get("/config")
async def get_config():
    """Get current configuration (non-sensitive)."""
    return {
        "shopify_shop": settings.shop_domain(),
        "shopify_api_version": settings.shopify_api_version,
        "collection_handle": settings.collection_handle,
        "exclude_tag": settings.exclude_tag,
        "token_refresh_margin_seconds": settings.token_refresh_margin_seconds,
    }
