# worker/providers/llm/gemini.py
"""
Gemini provider for image analysis (REST generateContent).

Usage:
    from worker.providers.llm.gemini import generate

    reply = generate(
        prompt="Analyze this image...",
        image=ImageInput(data=png_bytes, mime_type="image/png"),
    )
"""

from typing import Optional

import requests

from worker.app.config import settings
from worker.app.errors import ConfigurationError, TransportFailure
from worker.app.models import ImageInput
from worker.app.services.images import to_base64

MIN_API_KEY_LEN = 30


def validate_api_key(api_key: Optional[str]) -> str:
    if not api_key:
        raise ConfigurationError(
            "Gemini API key is missing. Please set GEMINI_API_KEY in your .env file."
        )
    if len(api_key) < MIN_API_KEY_LEN:
        raise ConfigurationError(
            "Invalid Gemini API key format. Please check your API key."
        )
    return api_key


def _reply_text(data: dict) -> str:
    """Join the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


def generate(
    prompt: str,
    image: ImageInput,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Send prompt + inline image to Gemini and return the reply text.

    Raises:
        ConfigurationError: missing or malformed API key (not retried)
        TransportFailure: network error, non-2xx status or unexpected body
    """
    api_key = validate_api_key(api_key or settings.GEMINI_API_KEY)
    model = model or settings.MODEL_NAME
    base_url = (base_url or settings.GEMINI_URL).rstrip("/")
    timeout = timeout or settings.HTTP_TIMEOUT_S

    url = f"{base_url}/models/{model}:generateContent"
    payload = {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": image.mime_type,
                            "data": to_base64(image),
                        }
                    },
                ],
            }
        ],
        "generationConfig": {
            "temperature": settings.LLM_TEMPERATURE,
            "maxOutputTokens": settings.LLM_MAX_TOKENS,
        },
    }

    try:
        response = requests.post(
            url,
            json=payload,
            headers={"x-goog-api-key": api_key},
            timeout=timeout,
        )
        response.raise_for_status()
        return _reply_text(response.json())
    except requests.HTTPError as e:
        raise TransportFailure(f"Gemini API error: {e}")
    except requests.RequestException as e:
        raise TransportFailure(f"Network error: {e}")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise TransportFailure(f"Response parsing error: {e}")
