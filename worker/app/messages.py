# worker/app/messages.py
"""User-facing failure messages, keyed by error kind then language."""

from __future__ import annotations

from worker.app.models import Language

MESSAGES = {
    "file_too_large": {
        Language.EN: "File size too large. Maximum size is {max_mb}MB.",
        Language.JA: "ファイルサイズが大きすぎます。最大サイズは{max_mb}MBです。",
    },
    "unsupported_type": {
        Language.EN: "Invalid file type. Supported types: {supported}",
        Language.JA: "無効なファイル形式です。対応形式: {supported}",
    },
    "read_failed": {
        Language.EN: "Could not read the image file.",
        Language.JA: "画像ファイルを読み込めませんでした。",
    },
    "configuration": {
        Language.EN: "The analysis service is not configured: {detail}",
        Language.JA: "分析サービスが設定されていません: {detail}",
    },
    "transport": {
        Language.EN: "Empty or failed response from the model. Please try again.",
        Language.JA: "APIからの応答が空でした。もう一度お試しください。",
    },
    "parse": {
        Language.EN: "Could not parse API response. Please try again.",
        Language.JA: "APIからの応答を解析できませんでした。もう一度お試しください。",
    },
    "empty_content": {
        Language.EN: "No text content found",
        Language.JA: "テキストコンテンツが見つかりません",
    },
    "language_mismatch": {
        Language.EN: "Response contains Japanese characters. Retrying analysis.",
        Language.JA: "応答が日本語ではありません。再度分析を行います。",
    },
    "exhausted": {
        Language.EN: "Image analysis failed. Please try again.",
        Language.JA: "画像の分析に失敗しました。もう一度お試しください。",
    },
}


def message(kind: str, language: Language | str, **fields) -> str:
    lang = Language.parse(language)
    table = MESSAGES.get(kind) or MESSAGES["exhausted"]
    template = table.get(lang) or table[Language.EN]
    try:
        return template.format(**fields)
    except (KeyError, IndexError):
        return template
