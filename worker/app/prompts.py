# worker/app/prompts.py
from __future__ import annotations

from worker.app.models import Language

ANALYSIS_PROMPT = """Please analyze this image and respond in English only.
Return your response in this exact JSON format, keeping all field names in English:

{
  "description": "",  // Main description of the image
  "text": "",         // All visible text
  "tables": [],       // Tabular data as rows of cells, e.g. [["item", "price"], ["tea", "3.00"]]
  "graphs": [],       // One description per chart or graph
  "objects": [],      // Notable objects detected in the image
  "analysis": []      // Key insights
}

Rules:
1. Use English only
2. Keep JSON structure exact
3. Translate any non-English text
4. Keep related information in the same table row (e.g. an item with its price)
5. If information is missing, use an empty string "" or an empty list []
6. Return only the JSON object, without any other text"""

ANALYSIS_PROMPT_JA = """この画像を分析し、日本語でのみ応答してください。
以下の正確なJSON形式で応答してください。フィールド名は英語のままにしてください：

{
  "description": "",  // 画像のメインの説明
  "text": "",         // 見えるテキストすべて
  "tables": [],       // 表形式データ（セルの行の配列）例：[["項目", "価格"], ["お茶", "300円"]]
  "graphs": [],       // グラフやチャートごとの説明
  "objects": [],      // 画像内の主な物体
  "analysis": []      // 重要な洞察
}

ルール：
1. 日本語のみを使用
2. JSON構造を正確に維持
3. 英語のテキストを翻訳
4. 関連情報は同じ行にまとめる（例：項目と価格）
5. 情報が欠落している場合は空文字列""または空配列[]を使用
6. JSONオブジェクトのみを返し、他のテキストは含めない"""

PROMPTS = {
    Language.EN: ANALYSIS_PROMPT,
    Language.JA: ANALYSIS_PROMPT_JA,
}


def prompt_for(language: Language | str) -> str:
    return PROMPTS[Language.parse(language)]
