"""
Map My Vid Gemini client.

Two calls are made against Gemini:
  - ``analyze_video``: video bytes inline + fixed extraction instruction,
    JSON-constrained output validated into ``VideoAnalysis``
  - ``generate_text``: free-form text for the itinerary planner, optionally
    with an inline voice recording

Both are single attempts. Transport/SDK failures surface as
``ExternalServiceError``; unusable output as ``ResponseParseError``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import pydantic
from google import genai
from google.genai import types

from mapmyvid.core.config import Settings, get_settings
from mapmyvid.core.exceptions import (
    ConfigurationError, ExternalServiceError, MapMyVidError, ResponseParseError,
    ValidationError,
)
from mapmyvid.schemas.schemas import VideoAnalysis

logger = logging.getLogger(__name__)

VIDEO_ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "locations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "type": {
                        "type": "STRING",
                        "enum": ["restaurant", "cafe", "hotel", "attraction", "store", "other"],
                    },
                    "context": {"type": "STRING"},
                    "address": {"type": "STRING"},
                },
                "required": ["name", "type", "context"],
            },
        },
        "city": {"type": "STRING"},
        "country": {"type": "STRING"},
        "summary": {"type": "STRING"},
    },
    "required": ["locations"],
}

EXTRACTION_INSTRUCTION = """\
Bạn là trợ lý trích xuất địa điểm từ video review du lịch.

QUY TẮC:
1. Chỉ dùng chữ hiển thị trên màn hình: phụ đề, caption, chữ chèn.
2. Liệt kê theo thứ tự xuất hiện trong video.
3. Trùng tên thì chỉ giữ một mục.
4. Bỏ qua địa điểm chung chung không có tên riêng ("quán ăn", "cửa hàng", "chỗ này").
5. Chỉ lấy địa điểm có thể tìm thấy trên Google Maps.

MỖI ĐỊA ĐIỂM:
- name: tên đầy đủ, chính xác (ví dụ "Pizza 4P's Saigon Centre")
- type: restaurant | cafe | hotel | attraction | store | other
- context: mô tả ngắn (ví dụ "nhà hàng pizza Ý nổi tiếng")
- address: chỉ điền khi video cho thấy địa chỉ đầy đủ theo dạng
  "Số nhà + Tên đường, Phường/Xã, Quận/Huyện, Thành phố/Tỉnh",
  ví dụ "65 Lê Lợi, Phường Bến Nghé, Quận 1, TP.HCM".
  Địa chỉ thiếu quận hoặc thành phố ("65 Lê Lợi", "gần chợ Bến Thành") thì để trống.

Ngoài ra trả về city, country của chuyến đi và summary ngắn gọn nội dung video.
Trả về JSON đúng schema. Chất lượng hơn số lượng.
"""

EXTRACTION_PROMPT = (
    "Phân tích video review này và trích xuất tất cả địa điểm cụ thể được nhắc đến "
    "hoặc xuất hiện trong video theo đúng hướng dẫn."
)


class GeminiClient:
    """Thin async wrapper around ``google-genai``."""

    def __init__(
        self,
        api_key: str,
        client: Optional[Any] = None,
        settings: Optional[Settings] = None,
    ):
        if client is None and not api_key:
            raise ConfigurationError("Gemini API key is not set")
        self.settings = settings or get_settings()
        self.client = client or genai.Client(api_key=api_key)

    async def analyze_video(self, video_bytes: bytes, mime_type: str) -> VideoAnalysis:
        if not video_bytes:
            raise ValidationError("Video content is empty")

        logger.info(f"Analyzing video with Gemini ({len(video_bytes) / 1024 / 1024:.1f} MB, {mime_type})")
        config = types.GenerateContentConfig(
            system_instruction=EXTRACTION_INSTRUCTION,
            temperature=self.settings.gemini_temperature,
            response_mime_type="application/json",
            response_schema=VIDEO_ANALYSIS_SCHEMA,
        )
        contents = [
            EXTRACTION_PROMPT,
            types.Part.from_bytes(data=video_bytes, mime_type=mime_type),
        ]
        text = await self._generate(self.settings.gemini_video_model, contents, config)

        try:
            analysis = VideoAnalysis.model_validate(json.loads(text))
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            logger.error(f"Gemini returned unusable extraction output: {text[:500]!r}")
            raise ResponseParseError(f"Gemini extraction output is not valid JSON: {e}") from e

        logger.info(
            f"Gemini extracted {len(analysis.locations)} locations "
            f"(city={analysis.city}, country={analysis.country})"
        )
        return analysis

    async def generate_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        audio_bytes: Optional[bytes] = None,
        audio_mime_type: Optional[str] = None,
    ) -> str:
        contents: list = [prompt]
        if audio_bytes:
            contents.append(
                types.Part.from_bytes(data=audio_bytes, mime_type=audio_mime_type or "audio/webm")
            )
        config = types.GenerateContentConfig(temperature=self.settings.gemini_temperature)
        return await self._generate(model or self.settings.gemini_route_model, contents, config)

    async def _generate(self, model: str, contents: list, config: types.GenerateContentConfig) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=model, contents=contents, config=config,
            )
        except MapMyVidError:
            raise
        except Exception as e:
            logger.exception(f"Gemini call failed (model={model})")
            raise ExternalServiceError(f"Gemini request failed: {e}") from e

        text = getattr(response, "text", None)
        if not isinstance(text, str) or not text.strip():
            raise ResponseParseError("Gemini response has no text")
        return text
