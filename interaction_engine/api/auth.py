"""
API Authentication Module
Shared admin token check for curated overlay and alias edits
"""
import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader, APIKeyQuery

from interaction_engine.config import settings

logger = logging.getLogger(__name__)

# Admin token may be sent as a header or as a query parameter
ADMIN_TOKEN_HEADER = APIKeyHeader(name="X-Admin-Token", auto_error=False)
ADMIN_TOKEN_QUERY = APIKeyQuery(name="token", auto_error=False)


def validate_admin_token(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; no configured token means no admin access"""
    if not expected or not provided:
        return False
    return hmac.compare_digest(str(provided).encode(), str(expected).encode())


async def get_admin_token(
    token_header: Optional[str] = Security(ADMIN_TOKEN_HEADER),
    token_query: Optional[str] = Security(ADMIN_TOKEN_QUERY),
) -> Optional[str]:
    """Extract admin token from header or query parameter"""
    return token_header or token_query


async def require_admin_token(token: Optional[str] = Depends(get_admin_token)) -> str:
    """
    Require the configured admin token - raises 403 otherwise.
    Runs before the handler body, so a rejected request never touches state.
    """
    expected = settings.CURATED_EDITOR_TOKEN
    if not expected:
        logger.warning("Admin request refused: no admin token configured")
        raise HTTPException(status_code=403, detail="Admin editing is not configured")
    if not validate_admin_token(token, expected):
        logger.warning("Admin request refused: invalid admin token")
        raise HTTPException(status_code=403, detail="Invalid admin token")
    return token
