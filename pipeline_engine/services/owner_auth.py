# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Owner Authentication

Owner-only routes (update, deactivate, execute) require a signed request:

    x-owner-address:   owner address
    x-owner-timestamp: Unix timestamp in seconds
    x-owner-signature: hex HMAC-SHA256 of "{address_lower}:{pipeline_id}:{timestamp}"

The HMAC key is PIPELINE_OWNER_SECRET.
"""

import hashlib
import hmac
import time
from typing import Optional

from fastapi import Depends, Header

from pipeline_engine.core.config import Config, get_owner_secret
from pipeline_engine.core.dependencies import get_current_config, get_pipeline_service
from pipeline_engine.core.errors import ForbiddenError, UnauthorizedError
from pipeline_engine.core.logging import get_service_logger
from .pipeline_service import PipelineService

logger = get_service_logger("owner-auth")

TIMESTAMP_TOLERANCE_SECONDS = 300  # 5 minutes


def signing_message(owner_address: str, pipeline_id: str, timestamp: str) -> str:
    return f"{owner_address.lower()}:{pipeline_id}:{timestamp}"


def sign_owner_request(secret: str, owner_address: str, pipeline_id: str, timestamp: str) -> str:
    """Signature a client sends in x-owner-signature"""
    mac = hmac.new(
        secret.encode(),
        msg=signing_message(owner_address, pipeline_id, timestamp).encode(),
        digestmod=hashlib.sha256,
    )
    return mac.hexdigest()


def verify_owner_signature(
    secret: Optional[str],
    owner_address: str,
    pipeline_id: str,
    timestamp: str,
    signature: str,
) -> bool:
    """
    Verify an owner signature using HMAC SHA-256

    Returns:
        True if signature is valid
    """
    if not secret:
        logger.error("PIPELINE_OWNER_SECRET not configured - owner request rejected")
        return False

    if not signature:
        return False

    computed_signature = sign_owner_request(secret, owner_address, pipeline_id, timestamp)

    # Constant-time comparison to prevent timing attacks
    return hmac.compare_digest(computed_signature, signature.strip().lower())


def verify_timestamp(timestamp: Optional[str], tolerance: int = TIMESTAMP_TOLERANCE_SECONDS) -> bool:
    """True if timestamp is within tolerance of now, in either direction"""
    if not timestamp:
        return False

    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"Invalid owner timestamp format: {timestamp}")
        return False

    if age > tolerance:
        logger.warning(
            f"Owner signature timestamp too old: {age}s (max {tolerance}s)",
            extra={"age_seconds": age, "tolerance": tolerance},
        )
        return False

    return True


async def require_pipeline_owner(
    id: str,
    x_owner_address: Optional[str] = Header(None),
    x_owner_signature: Optional[str] = Header(None),
    x_owner_timestamp: Optional[str] = Header(None),
    config: Config = Depends(get_current_config),
    service: PipelineService = Depends(get_pipeline_service),
) -> str:
    """
    FastAPI dependency for owner-only pipeline routes.

    Returns the authenticated owner address.

    Raises:
        UnauthorizedError: missing, expired or invalid signature
        NotFoundError: unknown pipeline
        ForbiddenError: signer is not the pipeline owner
    """
    if not x_owner_address or not x_owner_signature:
        raise UnauthorizedError("Owner authentication required")

    if not x_owner_timestamp:
        raise UnauthorizedError("Timestamp required")

    if not verify_timestamp(x_owner_timestamp, config.signature_max_age):
        raise UnauthorizedError("Signature expired or invalid timestamp")

    if not verify_owner_signature(get_owner_secret(), x_owner_address, id, x_owner_timestamp, x_owner_signature):
        raise UnauthorizedError("Invalid signature")

    pipeline = await service.get_pipeline(id)

    if pipeline.owner_address.lower() != x_owner_address.lower():
        raise ForbiddenError("Not the pipeline owner", resource=f"pipeline:{id}")

    return x_owner_address
