from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from twilio.request_validator import RequestValidator

from config.settings import Settings, get_settings
from relay.errors import ServerMisconfiguredError, SignatureValidationError

LOGGER = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"


@dataclass(frozen=True)
class WebhookValidationConfig:
    enabled: bool
    auth_token: str | None


def get_webhook_validation_config(settings: Settings | None = None) -> WebhookValidationConfig:
    settings = settings or get_settings()
    return WebhookValidationConfig(
        enabled=settings.webhook_validate,
        auth_token=settings.twilio_auth_token,
    )


def verify_twilio_signature(
    cfg: WebhookValidationConfig,
    *,
    url: str,
    params: Mapping[str, str],
    signature: str | None,
) -> None:
    """Raise unless the request carries a valid Twilio signature.

    Checked per request so a missing token only breaks the webhook, not startup.
    """

    if not cfg.enabled:
        return
    if not cfg.auth_token:
        LOGGER.error("TWILIO_AUTH_TOKEN is required when WEBHOOK_VALIDATE is enabled")
        raise ServerMisconfiguredError()
    if not signature:
        raise SignatureValidationError("Missing signature")

    validator = RequestValidator(cfg.auth_token)
    if not validator.validate(url, dict(params), signature):
        LOGGER.error("Invalid Twilio signature url=%s signature=%s", url, signature)
        raise SignatureValidationError("Invalid signature")
