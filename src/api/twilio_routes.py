"""Twilio Voice integration.

This module provides the call-setup webhook: TwiML that connects the call to
ConversationRelay, which then opens the relay WebSocket served by
``api.relay_routes``.
"""

from __future__ import annotations

import logging
from xml.sax.saxutils import quoteattr

from fastapi import APIRouter, Depends, Request, Response

from config.settings import Settings, get_settings
from integrations.twilio_client import (
    SIGNATURE_HEADER,
    WebhookValidationConfig,
    get_webhook_validation_config,
    verify_twilio_signature,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["twilio"])


def get_app_settings() -> Settings:
    return get_settings()


def get_validation_cfg() -> WebhookValidationConfig:
    return get_webhook_validation_config()


def _external_scheme(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-proto", "").split(",")[0].strip().lower()
    return forwarded or request.url.scheme


def _webhook_url(request: Request) -> str:
    """URL as Twilio requested it, which is what the signature covers."""

    host = request.headers.get("host") or request.url.netloc
    url = f"{_external_scheme(request)}://{host}{request.url.path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def relay_url(request: Request, settings: Settings) -> str:
    if settings.wss_url:
        return settings.wss_url
    scheme = "wss" if _external_scheme(request) == "https" else "ws"
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}{settings.ws_path}"


def _attrs(**attributes: str) -> str:
    return " ".join(f"{name}={quoteattr(value)}" for name, value in attributes.items())


def _twiml_conversation_relay(
    *,
    url: str,
    settings: Settings,
    parameters: dict[str, str],
) -> str:
    relay_attrs = _attrs(
        url=url,
        language=settings.cr_language,
        ttsProvider=settings.cr_tts_provider,
        voice=settings.cr_voice,
        welcomeGreeting=settings.cr_welcome,
        interruptible="true",
        transcriptionProvider=settings.cr_transcription_provider,
        speechModel=settings.cr_speech_model,
        profanityFilter="false",
    )
    params = "".join(
        f"<Parameter {_attrs(name=name, value=value)} />" for name, value in parameters.items()
    )
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        "<Connect>"
        f"<ConversationRelay {relay_attrs}>"
        f"{params}"
        "</ConversationRelay>"
        "</Connect>"
        "</Response>"
    )


async def _request_params(request: Request) -> dict[str, str]:
    if request.method != "POST":
        return {}
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


async def require_twilio_signature(
    request: Request,
    cfg: WebhookValidationConfig = Depends(get_validation_cfg),
) -> dict[str, str]:
    params = await _request_params(request)
    verify_twilio_signature(
        cfg,
        url=_webhook_url(request),
        params=params,
        signature=request.headers.get(SIGNATURE_HEADER),
    )
    return params


@router.api_route("/twiml/{preset}", methods=["GET", "POST"])
async def twiml_conversation_relay(
    preset: str,
    request: Request,
    params: dict[str, str] = Depends(require_twilio_signature),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    url = relay_url(request, settings)
    call_sid = params.get("CallSid") or "unknown"
    xml = _twiml_conversation_relay(
        url=url,
        settings=settings,
        parameters={"preset": preset, "callSid": call_sid},
    )
    LOGGER.info("TwiML generated for preset: %s, WebSocket URL: %s", preset, url)
    return Response(content=xml, media_type="text/xml")
