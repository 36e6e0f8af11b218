"""Text recognition over product-page snapshots.

Two interchangeable engines sit behind ``BaseOCREngine``:

* ``PixelOCREngine`` runs Tesseract locally (Pillow + pytesseract) and
  reports word-level confidence rolled up into lines.
* ``ModelOCREngine`` asks a vision model for a strict JSON transcription
  that already carries title/price/rating/review count.

``recognize_text`` is what the pipeline calls: engine failures are logged
and replaced by a zero-confidence ``OCRResult`` so the request carries on.
"""

from __future__ import annotations

import abc
import asyncio
import base64
import binascii
import io
import logging
from collections import OrderedDict
from typing import Any

from pagelens.core.config import PipelineConfig
from pagelens.services.analysis.errors import ExtractorError, SchemaError

from ..common import router as ai_router
from ..common.invoke import InvokeFailed, generate_with_retry
from ..common.json_tools import FAILURE_SCHEMA, JsonFailure, parse_model_json
from ..common.providers.base import split_data_url
from .contracts import (
    ENGINE_MODEL,
    ENGINE_PIXEL,
    ENGINE_TEXT,
    ModelOCRPayload,
    OCRLine,
    OCRResult,
    OCRSignals,
    clamp_confidence,
)

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "You are an OCR engine. Read every piece of visible text in this product page "
    "screenshot, top to bottom.\n"
    "Return ONLY a JSON object, no other text, with this exact shape:\n"
    '{"rawText": "all visible text, one line per visual line", '
    '"title": "product title or empty string", '
    '"price": "displayed price including currency symbol or empty string", '
    '"rating": "numeric star rating or empty string", '
    '"reviewCount": "number of reviews or ratings or empty string", '
    '"confidence": 0-100}'
)


class BaseOCREngine(abc.ABC):
    """Contract shared by every text-recognition engine."""

    name: str = "base"

    @abc.abstractmethod
    async def recognize(self, image_data_url: str) -> OCRResult:
        """Return an ``OCRResult`` for *image_data_url* or raise ``ExtractorError``."""


class PixelOCREngine(BaseOCREngine):
    name = ENGINE_PIXEL

    def __init__(self, *, lang: str = "eng", tesseract_cmd: str = "", timeout_seconds: float = 30.0) -> None:
        self._lang = lang
        if tesseract_cmd:
            import pytesseract

            # Module-global in pytesseract; worker threads only read it.
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._timeout_seconds = timeout_seconds

    async def recognize(self, image_data_url: str) -> OCRResult:
        image_bytes = decode_image_data_url(image_data_url)
        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self._image_to_data, image_bytes),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractorError("ocr", f"tesseract timed out after {self._timeout_seconds}s") from exc
        except ExtractorError:
            raise
        except Exception as exc:
            raise ExtractorError("ocr", f"tesseract failed: {exc}") from exc

        return build_pixel_result(data)

    def _image_to_data(self, image_bytes: bytes) -> dict[str, list[Any]]:
        import pytesseract
        from PIL import Image, UnidentifiedImageError

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                img = img.convert("RGB")
                return pytesseract.image_to_data(img, lang=self._lang, output_type=pytesseract.Output.DICT)
        except UnidentifiedImageError as exc:
            raise ExtractorError("ocr", "payload is not a readable image") from exc


class ModelOCREngine(BaseOCREngine):
    name = ENGINE_MODEL

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config

    async def recognize(self, image_data_url: str) -> OCRResult:
        resolved = ai_router.resolve("ocr", self._config)
        try:
            outcome = await generate_with_retry(
                resolved,
                OCR_PROMPT,
                _accept_ocr_payload,
                image_data_url=image_data_url,
                scope="ocr",
            )
        except InvokeFailed as exc:
            if isinstance(exc.last_error, ExtractorError):
                raise exc.last_error
            raise ExtractorError("ocr", str(exc)) from exc

        payload: ModelOCRPayload = outcome.value  # type: ignore[assignment]
        lines = tuple(
            OCRLine(text=line.strip(), confidence=payload.confidence)
            for line in payload.raw_text.splitlines()
            if line.strip()
        )
        return OCRResult(
            text=payload.raw_text,
            confidence=payload.confidence,
            lines=lines,
            signals=OCRSignals(
                title=payload.title,
                price=payload.price,
                rating=payload.rating,
                review_count=payload.review_count,
            ),
            engine=self.name,
        )


def _accept_ocr_payload(raw_text: str) -> ModelOCRPayload:
    outcome = parse_model_json(raw_text, ModelOCRPayload)
    if isinstance(outcome, JsonFailure):
        error_cls = SchemaError if outcome.reason == FAILURE_SCHEMA else ExtractorError
        raise error_cls("ocr", f"{outcome.reason}: {outcome.detail}")
    return outcome.value


def decode_image_data_url(image_data_url: str) -> bytes:
    try:
        _media_type, payload = split_data_url(image_data_url)
        return base64.b64decode(payload, validate=False)
    except (ValueError, binascii.Error) as exc:
        raise ExtractorError("ocr", "payload is not a base64 image data URL") from exc


def build_pixel_result(data: dict[str, list[Any]]) -> OCRResult:
    """Fold Tesseract ``image_to_data`` output into an ``OCRResult``.

    Words are grouped by (block, paragraph, line). Overall confidence is
    the mean of positive word confidences.
    """
    grouped: OrderedDict[tuple[int, int, int], list[tuple[str, float, int, int, int, int]]] = OrderedDict()
    word_confidences: list[float] = []

    texts = data.get("text", [])
    for i, raw_word in enumerate(texts):
        word = str(raw_word or "").strip()
        raw_conf = _to_float(_at(data, "conf", i, -1))
        if not word or raw_conf < 0:
            continue
        conf = clamp_confidence(raw_conf)
        if raw_conf > 0:
            word_confidences.append(conf)
        key = (int(_at(data, "block_num", i, 0)), int(_at(data, "par_num", i, 0)), int(_at(data, "line_num", i, 0)))
        grouped.setdefault(key, []).append(
            (
                word,
                conf,
                int(_at(data, "left", i, 0)),
                int(_at(data, "top", i, 0)),
                int(_at(data, "width", i, 0)),
                int(_at(data, "height", i, 0)),
            )
        )

    lines: list[OCRLine] = []
    for words in grouped.values():
        left = min(w[2] for w in words)
        top = min(w[3] for w in words)
        right = max(w[2] + w[4] for w in words)
        bottom = max(w[3] + w[5] for w in words)
        lines.append(
            OCRLine(
                text=" ".join(w[0] for w in words),
                confidence=sum(w[1] for w in words) / len(words),
                bbox=(left, top, right - left, bottom - top),
            )
        )

    confidence = sum(word_confidences) / len(word_confidences) if word_confidences else 0.0
    return OCRResult(
        text="\n".join(line.text for line in lines),
        confidence=round(confidence, 2),
        lines=tuple(lines),
        engine=ENGINE_PIXEL,
    )


def _at(data: dict[str, list[Any]], key: str, index: int, default: Any) -> Any:
    values = data.get(key) or []
    return values[index] if index < len(values) else default


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return -1.0


def get_ocr_engine(config: PipelineConfig) -> BaseOCREngine:
    """Return the engine selected by ``config.ocr_backend``."""
    if config.ocr_backend == ENGINE_PIXEL:
        return PixelOCREngine(
            lang=config.tesseract_lang,
            tesseract_cmd=config.tesseract_cmd,
            timeout_seconds=config.timeout_seconds,
        )
    return ModelOCREngine(config)


async def recognize_text(image_data_url: str, config: PipelineConfig) -> OCRResult:
    """Run the configured engine; failures degrade to a zero-confidence result."""
    engine = get_ocr_engine(config)
    try:
        return await engine.recognize(image_data_url)
    except ExtractorError as exc:
        logger.warning("OCR (%s) failed, continuing without text: %s", engine.name, exc)
    except Exception:
        logger.warning("OCR (%s) raised unexpectedly, continuing without text", engine.name, exc_info=True)
    return OCRResult.empty(engine=engine.name)


def text_snapshot_result(text: str) -> OCRResult:
    """Treat a text/markup snapshot as fully-confident recognised text."""
    lines = tuple(OCRLine(text=line.strip(), confidence=100.0) for line in text.splitlines() if line.strip())
    return OCRResult(text=text, confidence=100.0 if lines else 0.0, lines=lines, engine=ENGINE_TEXT)
