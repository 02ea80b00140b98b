from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


# Load environment variables from a local .env if present (harmless in containers)
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Primary provider (Gemini)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    # Secondary provider (Azure OpenAI), all-or-nothing
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_chat_deployment_name: Optional[str] = None
    azure_openai_api_version: Optional[str] = None
    fallback_max_tokens: int = 512
    fallback_temperature: float = 0.2
    # Exam-records collaborator
    exam_records_base_url: Optional[str] = None  # defaults to the request origin
    # Host headers accepted when the collaborator base is the request origin
    allowed_hosts: Tuple[str, ...] = ()
    exam_records_timeout: float = 10.0
    exam_db_path: str = "./data/exams.db"
    institution_name: str = "CMRIT"
    log_level: str = "INFO"

    @property
    def primary_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def secondary_configured(self) -> bool:
        return bool(
            self.azure_openai_endpoint
            and self.azure_openai_api_key
            and self.azure_openai_chat_deployment_name
        )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _list_env(name: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in os.getenv(name, "").split(",") if item.strip())


def get_settings() -> Settings:
    endpoint = os.getenv("AZURE_OPENAI_ENDPOINT") or os.getenv("AZURE_OPEN_AI__ENDPOINT")
    api_key = os.getenv("AZURE_OPENAI_API_KEY") or os.getenv("AZURE_OPEN_AI__API_KEY")
    deployment = os.getenv("AZURE_OPENAI_CHAT_DEPLOYMENT_NAME") or os.getenv(
        "AZURE_OPEN_AI__CHAT_COMPLETION_DEPLOYMENT_NAME"
    )

    # The fallback provider is optional, but a half-configured one is a deployment mistake
    azure = {
        "AZURE_OPENAI_ENDPOINT": endpoint,
        "AZURE_OPENAI_API_KEY": api_key,
        "AZURE_OPENAI_CHAT_DEPLOYMENT_NAME": deployment,
    }
    missing = [name for name, value in azure.items() if not value]
    if missing and len(missing) < len(azure):
        raise RuntimeError(
            "Incomplete Azure OpenAI fallback configuration, missing: "
            + ", ".join(missing)
        )

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        azure_openai_endpoint=endpoint,
        azure_openai_api_key=api_key,
        azure_openai_chat_deployment_name=deployment,
        azure_openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION"),
        fallback_max_tokens=_int_env("FALLBACK_MAX_TOKENS", 512),
        fallback_temperature=_float_env("FALLBACK_TEMPERATURE", 0.2),
        exam_records_base_url=os.getenv("EXAM_RECORDS_BASE_URL") or None,
        allowed_hosts=_list_env("ALLOWED_HOSTS"),
        exam_records_timeout=_float_env("EXAM_RECORDS_TIMEOUT", 10.0),
        exam_db_path=os.getenv("EXAM_DB_PATH", "./data/exams.db"),
        institution_name=os.getenv("INSTITUTION_NAME", "CMRIT"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
