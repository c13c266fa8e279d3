"""FastAPI webhook server for Neynar webhooks."""

import hashlib
import hmac
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Config
from .exceptions import SignatureVerificationError, WebhookPayloadError
from .neynar_client import NeynarAPI

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Neynar-Signature"


def verify_neynar_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Verify a Neynar webhook signature.

    Args:
        payload: Raw request body bytes
        signature: X-Neynar-Signature header value (hex encoded)
        secret: Webhook secret

    Returns:
        True if signature is valid, False otherwise
    """
    expected_signature = hmac.new(
        secret.encode("utf-8"),
        payload,
        hashlib.sha512
    ).hexdigest()

    is_valid = hmac.compare_digest(expected_signature.encode(), signature.encode())

    if not is_valid:
        logger.warning(
            "Signature verification failed. "
            f"Expected: {expected_signature[:16]}..., "
            f"Received: {signature[:16]}..."
        )

    return is_valid


def check_webhook_request(body: bytes, signature: str, secret: str) -> None:
    """Raise SignatureVerificationError unless ``signature`` matches ``body``."""
    if not signature:
        raise SignatureVerificationError("missing signature header")
    if not verify_neynar_signature(body, signature, secret):
        raise SignatureVerificationError("request not verified")


def create_webhook_app(
    config: Config, neynar: NeynarAPI, queue_mentions: bool = True
) -> FastAPI:
    """Create and configure the FastAPI webhook application.

    Args:
        config: Application configuration
        neynar: Client whose mention queue receives the casts
        queue_mentions: Queue casts for a poller. When False, deliveries are
            verified, parsed and logged only, since nothing would drain them.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Farcaster Client Webhooks",
        description="Neynar webhook receiver for bot mentions",
        version="1.0.0"
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "farcaster-client-webhooks"
        }

    @app.post("/webhooks/neynar")
    async def neynar_webhook(request: Request) -> JSONResponse:
        """Handle incoming Neynar webhooks.

        Returns 401 for invalid signatures and 400 for bodies that cannot be
        parsed. When queueing is on, the cast is queued before responding.
        """
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")

        if not config.webhook.secret:
            logger.error("Neynar webhook secret not configured")
            raise HTTPException(
                status_code=500,
                detail="Webhook secret not configured"
            )

        try:
            check_webhook_request(body, signature, config.webhook.secret.get_secret_value())
        except SignatureVerificationError as e:
            logger.warning("Rejected webhook delivery: %s", e)
            raise HTTPException(status_code=401, detail=str(e))

        try:
            if queue_mentions:
                neynar.webhook_mentions_handler(body)
            else:
                parsed = neynar.parse_webhook(body)
                if parsed is not None:
                    logger.info("Received cast %s", parsed[1])
        except WebhookPayloadError as e:
            logger.error("Could not handle webhook: %s", e)
            raise HTTPException(status_code=400, detail="error handling webhook")

        return JSONResponse({"status": "ok"}, status_code=200)

    return app
