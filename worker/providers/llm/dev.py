# worker/providers/llm/dev.py
"""Offline provider for local runs and tests (MODEL_PROVIDER=dev)."""

import json

from worker.app.models import ImageInput
from worker.app.services.hasher import fingerprint

DEV_REPLIES = {
    "en": "[DEV] image {fp} ({mime}, {size} bytes) analyzed offline",
    "ja": "[DEV] 画像 {fp}（{mime}、{size}バイト）をオフラインで分析しました",
}


def generate(prompt: str, image: ImageInput) -> str:
    """Deterministic visual-v1 reply; the language follows the prompt."""
    lang = "ja" if "日本語" in prompt else "en"
    fp = fingerprint(image.data)[:12]
    description = DEV_REPLIES[lang].format(fp=fp, mime=image.mime_type, size=image.size)
    return json.dumps(
        {
            "description": description,
            "text": "",
            "tables": [],
            "graphs": [],
            "objects": [],
            "analysis": [],
        },
        ensure_ascii=False,
    )
