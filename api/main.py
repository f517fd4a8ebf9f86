"""
=====================================================
Craftsman Phone Assistant - Main FastAPI Application
=====================================================
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, WebSocket, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from config.settings import get_settings
from services.conversation.orchestrator import CallOrchestrator, build_orchestrator
from services.security import TwilioSignatureValidator
from services.telephony.twilio_service import create_twilio_service


# Get settings
settings = get_settings()

# Configure logger
logger.remove()  # Remove default handler
logger.add(
    settings.log_file,
    rotation="100 MB",
    retention="14 days",
    level=settings.log_level,
    backtrace=True,
    diagnose=False  # Keep caller data out of tracebacks
)
logger.add(lambda msg: print(msg, end=""), level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("Craftsman Phone Assistant starting up...")

    # Fails fast with ConfigurationError when a provider is not configured
    app.state.orchestrator = build_orchestrator(settings)

    yield

    logger.info("Craftsman Phone Assistant shutting down...")
    await app.state.orchestrator.close()


# Create FastAPI app
app = FastAPI(
    title="Craftsman Phone Assistant",
    description="AI phone assistant that books appointments for craftsmen",
    version=settings.app_version,
    lifespan=lifespan
)

twilio = create_twilio_service(settings.model_dump())
signature_validator = TwilioSignatureValidator(settings.twilio_auth_token, settings.public_domain)


def _orchestrator(app: FastAPI) -> Optional[CallOrchestrator]:
    return getattr(app.state, "orchestrator", None)


def _xml(content: str, status_code: int = 200) -> Response:
    return Response(content=content, media_type="text/xml", status_code=status_code)


# =====================================================
# HEALTH CHECK
# =====================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "craftsman-phone-assistant",
        "version": settings.app_version,
        "environment": settings.environment
    }


@app.get("/api/stats")
async def get_stats():
    """Active call statistics"""
    orchestrator = _orchestrator(app)
    return {
        "active_calls": orchestrator.active_call_count if orchestrator else 0,
        "calls": orchestrator.get_active_calls() if orchestrator else [],
        "environment": settings.environment,
        "version": settings.app_version
    }


# =====================================================
# TWILIO WEBHOOK (TwiML)
# =====================================================

@app.post("/api/phone/webhook")
async def phone_webhook(request: Request, craftsman_id: Optional[str] = None):
    """
    Handle incoming call from Twilio

    Returns TwiML that plays the disclosure and connects the Media Stream.
    """
    try:
        form = await request.form()

        if settings.twilio_validate_signature and not signature_validator.validate(request, form):
            return _xml(twilio.generate_apology_twiml(), status_code=403)

        phone_number = form.get("From", "")
        craftsman = craftsman_id or settings.default_craftsman_id
        if form.get("ForwardedFrom"):
            logger.info(f"Webhook: Call forwarded from {form.get('ForwardedFrom')}")

        host = request.headers.get("X-Forwarded-Host") or request.headers.get("host")
        ws_url = settings.stream_url(host)

        logger.info(f"Webhook: Incoming call from {phone_number} for craftsman {craftsman or '-'}")
        twiml = twilio.generate_twiml(ws_url, craftsman_id=craftsman, phone_number=phone_number)
        return _xml(twiml)

    except Exception as e:
        logger.exception(f"Webhook: Failed to build TwiML: {e!r}")
        return _xml(twilio.generate_apology_twiml())


# =====================================================
# WEBSOCKET ENDPOINT (Twilio Media Streams)
# =====================================================

@app.websocket("/api/phone/stream")
async def phone_stream(websocket: WebSocket):
    """
    WebSocket endpoint for Twilio Media Streams

    Twilio connects here after the webhook's <Connect><Stream>.
    """
    await websocket.accept()
    orchestrator = _orchestrator(websocket.app)
    if orchestrator is None:
        logger.error("WebSocket: Orchestrator not initialized, closing stream")
        await websocket.close(code=1011)
        return

    try:
        await orchestrator.handle_call(websocket)
    except Exception as e:
        logger.exception(f"WebSocket: Error: {e!r}")
    finally:
        logger.info("WebSocket: Connection ended")


# =====================================================
# ERROR HANDLERS
# =====================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc!r}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


# =====================================================
# MAIN ENTRY POINT (for development)
# =====================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
