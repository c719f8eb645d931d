"""
Service Constants (Single Source of Truth)

정적 상수 정의 - 빌드 타임에 결정되며 환경변수로 변경되지 않음
"""

# =============================================================================
# Service Identity
# =============================================================================
SERVICE_NAME = "image-delivery"
SERVICE_VERSION = "1.0.0"

# =============================================================================
# Routes
# =============================================================================
TRANSFORM_PATH_PREFIX = "/img"
ISSUE_PATH = "/image-url"
UPLOAD_SIGN_PATH = "/sign-upload"

# =============================================================================
# Transform Limits
# =============================================================================
MIN_DIMENSION = 1
MAX_DIMENSION = 4096
MIN_QUALITY = 1
MAX_QUALITY = 100

# Query parameter names (public URL contract)
PARAM_WIDTH = "w"
PARAM_HEIGHT = "h"
PARAM_FIT = "fit"
PARAM_FORMAT = "fmt"
PARAM_QUALITY = "q"
PARAM_EXPIRES = "expires"
PARAM_SIGNATURE = "signature"

TRANSFORM_PARAMS = (
    PARAM_WIDTH,
    PARAM_HEIGHT,
    PARAM_FIT,
    PARAM_FORMAT,
    PARAM_QUALITY,
    PARAM_EXPIRES,
)

# UTC, e.g. 19700102T120304Z
EXPIRES_FORMAT = "%Y%m%dT%H%M%SZ"
EXPIRES_EXAMPLE = "19700102T120304Z"

# =============================================================================
# Cache Policy
# =============================================================================
# 변환 URL은 파라미터로 내용이 결정됨 (content-addressed)
CACHE_CONTROL_IMMUTABLE = "public, max-age=31536000, immutable"

# =============================================================================
# Logging Constants (12-Factor App Compliance)
# =============================================================================
ENV_KEY_ENVIRONMENT = "ENVIRONMENT"
ENV_KEY_LOG_LEVEL = "LOG_LEVEL"
ENV_KEY_LOG_FORMAT = "LOG_FORMAT"

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"

# ECS (Elastic Common Schema) version
ECS_VERSION = "8.11.0"

# LogRecord attributes to exclude from extra fields
# Reference: https://docs.python.org/3/library/logging.html#logrecord-attributes
EXCLUDED_LOG_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

# =============================================================================
# PII / Credential Masking
# =============================================================================
# Sensitive field names (case-insensitive substring matching)
SENSITIVE_FIELD_PATTERNS = frozenset(
    {
        "secret",  # signing_secret
        "signature",  # URL signatures are bearer credentials
        "token",
        "password",
        "authorization",
        "policy",  # presigned POST policy document
    }
)

MASK_PLACEHOLDER = "***REDACTED***"
MASK_PRESERVE_PREFIX = 4
MASK_MIN_LENGTH = 10

# Loggers capped at WARNING
NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "botocore",
    "boto3",
    "urllib3",
    "PIL",
    "asyncio",
)
