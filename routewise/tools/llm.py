"""Chat model client shared by the route optimizer and the photo recognizer."""

import json
import re

from openai import AsyncOpenAI

from routewise.config import Settings, settings as default_settings


def create_llm_client(
    settings: Settings | None = None,
    api_key: str | None = None,
) -> AsyncOpenAI:
    """
    Create the OpenAI-compatible client used for all model calls.
    
    Args:
        settings: Settings to read endpoints from. Defaults to the global settings.
        api_key: Overrides the configured key (GITHUB_TOKEN / OPENAI_API_KEY).
    
    Returns:
        AsyncOpenAI client pointed at GitHub Models, or at Ollama when USE_OLLAMA is set
    """
    settings = settings or default_settings
    
    if settings.use_ollama:
        return AsyncOpenAI(
            base_url=settings.ollama_url,
            api_key="ollama",  # Ollama doesn't need a real key
            max_retries=0,
        )
    
    token = api_key or settings.llm_api_key
    if not token:
        raise ValueError(
            "A model token is required. Set GITHUB_TOKEN or OPENAI_API_KEY, "
            "or set USE_OLLAMA=true to use a local model."
        )
    
    return AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=token,
        timeout=settings.http_timeout * 2,
        max_retries=0,  # no automatic retries
    )


def extract_json_object(text: str) -> dict:
    """
    Pull the first JSON object out of a model reply.
    
    Models sometimes wrap JSON in prose or code fences despite instructions.
    Raises ValueError if there is no parseable object.
    """
    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if not json_match:
        raise ValueError("no JSON object in model reply")
    
    data = json.loads(json_match.group())
    if not isinstance(data, dict):
        raise ValueError("model reply is not a JSON object")
    return data
