"""Environment-variable-based configuration and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = os.getenv("FITGENIUS_DATA_DIR", os.path.join("data", "state"))
DEFAULT_LANGUAGE = os.getenv("FITGENIUS_LANGUAGE", "en")
PLAN_WEEKS = int(os.getenv("FITGENIUS_PLAN_WEEKS", "4"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CHAT_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "dall-e-3")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass
class AppConfig:
    data_dir: str = DATA_DIR
    language: str = DEFAULT_LANGUAGE
    plan_weeks: int = PLAN_WEEKS
    chat_model: str = CHAT_MODEL
    image_model: str = IMAGE_MODEL

    @classmethod
    def from_env(cls) -> "AppConfig":
        # Re-read so values set after import (e.g. Streamlit secrets) are honored
        return cls(
            data_dir=os.getenv("FITGENIUS_DATA_DIR", DATA_DIR),
            language=os.getenv("FITGENIUS_LANGUAGE", DEFAULT_LANGUAGE),
            plan_weeks=int(os.getenv("FITGENIUS_PLAN_WEEKS", str(PLAN_WEEKS))),
            chat_model=os.getenv("OPENAI_MODEL", CHAT_MODEL),
            image_model=os.getenv("IMAGE_MODEL", IMAGE_MODEL),
        )


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
