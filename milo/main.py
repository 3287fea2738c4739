import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from milo.api.v1.analytics import router as analytics_router
from milo.api.v1.health import router as health_router
from milo.api.v1.onboarding import router as onboarding_router
from milo.api.v1.profile import router as profile_router
from milo.core.config import settings
from milo.core.errors import ResumeProcessingError, request_validation_error_handler, resume_error_handler
from milo.core.lifespan import lifespan
from milo.core.rate_limit import limiter

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.environment)

app = FastAPI(title="Milo Resume API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=(settings.cors_allow_origin_regex or "").strip() or None,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ResumeProcessingError, resume_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(onboarding_router, prefix="/v1", tags=["Onboarding"])
app.include_router(profile_router, prefix="/v1", tags=["Profile"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
