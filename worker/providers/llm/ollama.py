# worker/providers/llm/ollama.py
"""
Ollama provider for image analysis with a local vision model.

Usage:
    from worker.providers.llm.ollama import generate

    reply = generate(
        prompt="Analyze this image...",
        image=ImageInput(data=png_bytes, mime_type="image/png"),
        host="http://localhost:11434",
        model="llava:7b",
    )
"""

from typing import Optional

import requests

from worker.app.config import settings
from worker.app.errors import TransportFailure
from worker.app.models import ImageInput
from worker.app.services.images import to_base64


def generate(
    prompt: str,
    image: ImageInput,
    host: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Generate an analysis reply using the Ollama API.

    Args:
        prompt: The prompt to send to the model
        image: Image to attach (sent base64-encoded in "images")
        host: Ollama host (default: settings.OLLAMA_URL)
        model: Vision model (default: settings.OLLAMA_VISION_MODEL)
        timeout: Request timeout in seconds (default: settings.HTTP_TIMEOUT_S)

    Returns:
        Generated text (may be empty; the caller decides what empty means)

    Raises:
        TransportFailure: on network errors or non-2xx responses
    """
    if host is None:
        host = settings.OLLAMA_URL
    if model is None:
        model = settings.OLLAMA_VISION_MODEL

    try:
        response = requests.post(
            f"{host}/api/generate",
            json={
                "model": model,
                "prompt": prompt,
                "images": [to_base64(image)],
                "stream": False,
                "options": {
                    "temperature": settings.LLM_TEMPERATURE,
                    "num_predict": settings.LLM_MAX_TOKENS,
                },
            },
            timeout=timeout or settings.HTTP_TIMEOUT_S,
        )

        if not (200 <= response.status_code < 300):
            raise TransportFailure(f"Ollama API error: HTTP {response.status_code}")

        data = response.json()
        return str(data.get("response", "")).strip()

    except requests.RequestException as e:
        raise TransportFailure(f"Network error: {e}")
    except (ValueError, AttributeError) as e:
        raise TransportFailure(f"Response parsing error: {e}")
