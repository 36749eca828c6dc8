import json
import logging
import os
import re

from pydantic import BaseModel, ValidationError

from sales_assistant.config import settings
from sales_assistant.schemas.car import AdContent, AnalysisResult, CarDetails
from sales_assistant.utils.exceptions import AnalysisError, GenerationError

logger = logging.getLogger(__name__)

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "prompts")


def _load_prompt(name: str) -> str:
    with open(os.path.join(PROMPTS_DIR, name), encoding="utf-8") as f:
        return f.read()


def _describe_car(details: CarDetails) -> str:
    lines = [
        f"Модель: {details.model}",
        f"Рік: {details.year}",
        f"Пробіг: {details.mileage} км",
        f"Ціна: ${details.price}",
    ]
    if details.engine_volume:
        lines.append(f"Об'єм двигуна: {details.engine_volume}")
    if details.fuel_type:
        lines.append(f"Паливо: {details.fuel_type}")
    if details.trim_level:
        lines.append(f"Комплектація: {details.trim_level}")
    if details.additional_info:
        lines.append(f"Додатково: {details.additional_info}")
    return "\n".join(lines)


def _mask_secrets(message: str) -> str:
    return re.sub(r'sk-[A-Za-z0-9_-]+', 'sk-***', message)


def _build_api_kwargs(model: str, content: list[dict]) -> dict:
    """Build OpenAI API kwargs based on model type."""
    api_kwargs: dict = {
        "model": model,
        "messages": [{"role": "user", "content": content}],
    }

    if model.startswith("o"):
        # o-series reasoning models (o1, o3, o4-mini, etc.)
        # - no temperature support
        # - use max_completion_tokens instead of max_tokens
        api_kwargs["max_completion_tokens"] = 8192
    else:
        api_kwargs["max_tokens"] = 4096
        api_kwargs["temperature"] = 0.4

    return api_kwargs


def _build_content(prompt: str, images: list[str]) -> list[dict]:
    content: list[dict] = [{"type": "text", "text": prompt}]
    for data_url in images:
        content.append({
            "type": "image_url",
            "image_url": {"url": data_url, "detail": "high"},
        })
    return content


def _strip_code_fences(raw_text: str) -> str:
    json_text = raw_text.strip()
    if json_text.startswith("```"):
        lines = json_text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        json_text = "\n".join(lines)
    return json_text


async def _complete_json(prompt: str, images: list[str], schema: type[BaseModel]):
    """Send one multimodal request and validate the JSON reply against ``schema``."""
    from openai import AsyncOpenAI

    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY not configured")

    kwargs = {"api_key": settings.openai_api_key}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    model = settings.openai_model
    api_kwargs = _build_api_kwargs(model, _build_content(prompt, images))
    logger.info("OpenAI request: model=%s, images=%d", model, len(images))

    async with AsyncOpenAI(**kwargs) as client:
        response = await client.chat.completions.create(**api_kwargs)

    raw_text = response.choices[0].message.content or ""
    logger.info("OpenAI raw response (%d chars): %s", len(raw_text), raw_text[:500])

    return schema.model_validate(json.loads(_strip_code_fences(raw_text)))


async def analyze_car_images(images: list[str], details: CarDetails) -> AnalysisResult:
    """Inspect the car photos and details, returning a condition report."""
    prompt = _load_prompt("car_analysis.txt").format(car_description=_describe_car(details))
    try:
        result = await _complete_json(prompt, images, AnalysisResult)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Analyzer returned an unusable reply: %s", e)
        raise AnalysisError("Не вдалося розпізнати відповідь аналізу. Спробуйте ще раз.") from e
    except Exception as e:
        logger.exception("AI analysis FAILED for %s", details.model)
        raise AnalysisError(_mask_secrets(str(e))) from e

    logger.info("Analysis completed for %s: score=%d, defects=%d", details.model, result.score, len(result.defects))
    return result


async def generate_ads(analysis: AnalysisResult, images: list[str], details: CarDetails) -> AdContent:
    """Write marketing copy for every sales channel. ``images`` may be empty."""
    prompt = _load_prompt("ad_generation.txt").format(
        car_description=_describe_car(details),
        analysis=json.dumps(analysis.model_dump(mode="json"), ensure_ascii=False, indent=2),
        price=details.price,
        mileage=details.mileage,
    )
    try:
        ads = await _complete_json(prompt, images, AdContent)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Generator returned an unusable reply: %s", e)
        raise GenerationError("Не вдалося розпізнати згенеровані тексти. Спробуйте ще раз.") from e
    except Exception as e:
        logger.exception("Ad generation FAILED for %s", details.model)
        raise GenerationError(_mask_secrets(str(e))) from e

    logger.info("Ads generated for %s", details.model)
    return ads
