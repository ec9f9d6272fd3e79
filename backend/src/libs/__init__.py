import os

import openai
from dotenv import load_dotenv

__all__ = ["openai", "get_client"]
load_dotenv()


def get_client():
    """OpenAI client configured from Django settings, falling back to the environment."""
    from django.conf import settings

    api_key = getattr(settings, "OPENAI_API_KEY", None) or os.getenv("OPENAI_API_KEY")
    base_url = getattr(settings, "OPENAI_API_BASE", None) or os.getenv("OPENAI_API_BASE") or None
    return openai.OpenAI(api_key=api_key, base_url=base_url)
