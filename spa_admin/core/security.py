import hmac

from fastapi import HTTPException, Header

from spa_admin.core.config import settings
from spa_admin.core.logger import logger

async def verify_admin_token(x_admin_token: str = Header(None)):
    """
    Verify the admin token from the request header.
    Replaces the old browser-side "setup complete" flag: the check lives on the
    server, and an unset ADMIN_API_TOKEN locks admin routes instead of opening them.
    """
    if not settings.ADMIN_API_TOKEN:
        logger.error("❌ ADMIN_API_TOKEN is not configured, rejecting admin request.")
        raise HTTPException(status_code=503, detail="Admin access is not configured")

    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        logger.warning("⚠️ Rejected admin request with invalid token")
        raise HTTPException(status_code=403, detail="Invalid admin token")
    return True
