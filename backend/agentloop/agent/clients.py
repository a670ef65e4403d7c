import logging
import os
from typing import Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

from ..utils.logging import mask_credential_value

load_dotenv(override=True)

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def get_openai_client(base_url: Optional[str] = None) -> AsyncOpenAI:
    """
    Initializes and returns an async OpenAI client for OpenAI's API, or any
    OpenAI-compatible endpoint set via OPENAI_BASE_URL.
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY environment variable is not set.")

    base_url = base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL
    logger.debug(f"OpenAI client for {base_url} using key {mask_credential_value(api_key)}")
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
    )
