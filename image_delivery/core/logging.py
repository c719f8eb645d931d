"""
Structured Logging (ECS JSON on stdout)

컨테이너 stdout 으로 한 줄 JSON 을 출력하고 수집기가 그대로 읽어 갑니다.
서명 URL 은 그 자체가 접근 권한이므로 로그에 남기 전에 signature 값을 가립니다:
- extra 필드: 키 이름 기준 마스킹 (signature, secret, policy ...)
- 메시지 본문: ``signature=<hex>`` 쿼리 조각 치환 (uvicorn access log 포함)
"""

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any

from image_delivery.core.constants import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    ECS_VERSION,
    ENV_KEY_ENVIRONMENT,
    ENV_KEY_LOG_FORMAT,
    ENV_KEY_LOG_LEVEL,
    EXCLUDED_LOG_RECORD_ATTRS,
    MASK_MIN_LENGTH,
    MASK_PLACEHOLDER,
    MASK_PRESERVE_PREFIX,
    NOISY_LOGGERS,
    PARAM_SIGNATURE,
    SENSITIVE_FIELD_PATTERNS,
    SERVICE_NAME,
    SERVICE_VERSION,
)

# extra 키 -> ECS 최상위 필드
PROMOTED_FIELDS = {
    "url_path": "url.path",
    "status_code": "http.response.status_code",
    "error_code": "error.code",
    "object_key": "file.path",
}

_SIGNATURE_IN_QUERY = re.compile(rf"({PARAM_SIGNATURE}=)[^&\s\"']+")


def redact_query_signatures(text: str) -> str:
    return _SIGNATURE_IN_QUERY.sub(rf"\g<1>{MASK_PLACEHOLDER}", text)


def _is_credential(key: str) -> bool:
    return any(pattern in key.lower() for pattern in SENSITIVE_FIELD_PATTERNS)


def _conceal(value: Any) -> str:
    text = "" if value is None else str(value)
    if len(text) <= MASK_MIN_LENGTH:
        return MASK_PLACEHOLDER
    # 앞 몇 글자만 남겨 어느 값인지 대조 가능하게
    return f"{text[:MASK_PRESERVE_PREFIX]}{MASK_PLACEHOLDER}"


def redact(key: str, value: Any) -> Any:
    """Redact one ``extra`` field.

    자격 증명처럼 보이는 키는 값을 가리고, 문자열 값은 signature 쿼리 조각을
    치환합니다. dict/list 는 재귀적으로 처리합니다.
    """
    if _is_credential(key):
        return _conceal(value)
    if isinstance(value, str):
        return redact_query_signatures(value)
    if isinstance(value, dict):
        return {k: redact(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact("", item) for item in value]
    return value


class CredentialRedactionFilter(logging.Filter):
    """Conceals signatures and secrets in the message and ``extra`` fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if PARAM_SIGNATURE in message:
            record.msg = redact_query_signatures(message)
            record.args = None
        extras = [key for key in record.__dict__ if key not in EXCLUDED_LOG_RECORD_ATTRS]
        for key in extras:
            record.__dict__[key] = redact(key, record.__dict__[key])
        return True


class ECSJsonFormatter(logging.Formatter):
    """Elastic Common Schema (ECS) 기반 JSON 포매터

    마스킹은 핸들러의 ``CredentialRedactionFilter`` 가 포맷 전에 수행합니다.
    """

    def __init__(
        self,
        service_name: str = SERVICE_NAME,
        service_version: str = SERVICE_VERSION,
        environment: str = DEFAULT_ENVIRONMENT,
    ):
        super().__init__()
        self._service = {
            "service.name": service_name,
            "service.version": service_version,
            "service.environment": environment,
        }

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "log.level": record.levelname.lower(),
            "log.logger": record.name,
            "message": record.getMessage(),
            "ecs.version": ECS_VERSION,
            **self._service,
        }
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            document["error.type"] = type(error).__name__
            document["error.message"] = str(error)
            document["error.stack_trace"] = self.formatException(record.exc_info)

        labels = {}
        for key, value in record.__dict__.items():
            if key in EXCLUDED_LOG_RECORD_ATTRS:
                continue
            if key in PROMOTED_FIELDS:
                document[PROMOTED_FIELDS[key]] = value
            else:
                labels[key] = value
        if labels:
            document["labels"] = labels

        return json.dumps(document, ensure_ascii=False, default=str)


def configure_logging(log_level: str | None = None, json_format: bool | None = None) -> None:
    """Install a single stdout handler on the root logger.

    LOG_LEVEL, LOG_FORMAT (json|text), ENVIRONMENT 환경변수를 따릅니다.
    """
    level_name = (log_level or os.getenv(ENV_KEY_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()
    level = getattr(logging, level_name, logging.INFO)
    if json_format is None:
        json_format = os.getenv(ENV_KEY_LOG_FORMAT, DEFAULT_LOG_FORMAT) == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CredentialRedactionFilter())
    if json_format:
        handler.setFormatter(
            ECSJsonFormatter(environment=os.getenv(ENV_KEY_ENVIRONMENT, DEFAULT_ENVIRONMENT))
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
