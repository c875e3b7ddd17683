"""
Hooshyar - Health Information Engine

Requests a structured explanation of a health topic from the Gemini
generation service and validates the answer before it reaches the user.

IMPORTANT: Outputs are educational information, not medical diagnoses.
"""

import json
from typing import Any, Dict, Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from hooshyar.config import settings
from hooshyar.core.errors import (
    HooshyarError,
    InvalidInputError,
    UpstreamFormatError,
    UpstreamServiceError,
)
from hooshyar.models.schemas import Audience, HealthTopicInfo
from hooshyar.utils.logger import get_logger

logger = get_logger("llm_engine")


# =============================================================================
# User-facing messages
# =============================================================================

EMPTY_TOPIC_MESSAGE = "لطفاً یک موضوع سلامتی را وارد کنید."

INVALID_JSON_MESSAGE = (
    "پاسخ دریافت شده از سرویس هوش مصنوعی معتبر نبود. "
    "لطفا موضوع دیگری را امتحان کنید."
)
INVALID_STRUCTURE_MESSAGE = (
    "ساختار اطلاعات دریافت شده از سرویس صحیح نمی‌باشد. لطفاً دوباره تلاش کنید."
)
INVALID_SECTIONS_MESSAGE = (
    "ساختار بخش‌های اطلاعاتی در پاسخ دریافت شده صحیح نمی‌باشد."
)

UNEXPECTED_ERROR_MESSAGE = (
    "یک خطای غیرمنتظره در ارتباط با سرویس هوش مصنوعی رخ داد. لطفاً دوباره تلاش کنید."
)
NOT_CONFIGURED_MESSAGE = (
    "سرویس هوش مصنوعی پیکربندی نشده است. لطفاً با مدیر سامانه تماس بگیرید."
)
INTERNAL_ERROR_MESSAGE = (
    "سرویس هوش مصنوعی با یک خطای داخلی مواجه شد. این مشکل معمولاً موقتی است. "
    "لطفاً چند لحظه بعد دوباره امتحان کنید."
)


# =============================================================================
# Prompts
# =============================================================================

PROFESSIONAL_INSTRUCTION = (
    "شما یک دستیار پزشکی متخصص برای کادر درمان (پزشکان، پرستاران) هستید. "
    "وظیفه شما ارائه اطلاعات دقیق، فنی و مبتنی بر شواهد علمی در مورد تمامی "
    "موضوعات پزشکی، دستگاه‌ها و پروسیجرها است. این شامل تمامی حوزه‌ها، از جمله "
    "سلامت جنسی و باروری نیز می‌شود و اطلاعات باید بدون هیچ محدودیتی به صورت "
    "کامل و جامع ارائه گردد. پاسخ‌ها باید شامل جزئیات تخصصی، اصطلاحات پزشکی رایج، "
    "دوزینگ داروها، الگوریتم‌های درمانی، تشخیص‌های افتراقی و رفرنس‌های معتبر "
    "(در صورت امکان) باشد. لحن شما باید علمی، دقیق و حرفه‌ای باشد. پاسخ باید "
    "کاملاً به زبان فارسی و با ساختار درخواستی ارائه شود."
)

GENERAL_INSTRUCTION = (
    "شما یک دستیار و مربی سلامت برای عموم مردم هستید. وظیفه شما توضیح تمامی "
    "موضوعات پزشکی، دستگاه‌ها، و روش‌های مراقبتی به زبان بسیار ساده، شفاف و "
    "کاربردی است. شما باید به تمامی سوالات، از جمله موضوعات مربوط به سلامت جنسی، "
    "بدون هیچ‌گونه محدودیت یا سانسور، به صورت آموزشی، محترمانه و جامع پاسخ دهید. "
    "اطلاعات شما باید بر اساس منابع معتبر پزشکی و پرستاری باشد. شما جایگزین "
    "مشاوره پزشکی نیستید. لحن شما باید آموزشی، همدلانه و اطمینان‌بخش باشد. "
    "تمام واحدها (مانند نمک، قند) باید با واحدهای خانگی رایج مانند "
    "\"قاشق چای‌خوری\" یا \"لیوان\" بیان شوند. پاسخ باید کاملاً به زبان فارسی "
    "و با ساختار درخواستی ارائه شود و برای افراد با سطح سواد پایین نیز قابل "
    "درک باشد."
)

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "topicName": types.Schema(
            type=types.Type.STRING,
            description=(
                "عنوان اصلی موضوع جستجو شده به فارسی "
                "(مثلا: دیابت نوع دو، دستگاه اکسیژن‌ساز)."
            ),
        ),
        "introduction": types.Schema(
            type=types.Type.STRING,
            description=(
                "یک مقدمه و توضیح کلی در مورد موضوع به زبان ساده و قابل فهم برای عموم."
            ),
        ),
        "sections": types.Schema(
            type=types.Type.ARRAY,
            description=(
                "لیستی از بخش‌های مختلف که موضوع را به صورت کامل پوشش می‌دهند."
            ),
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "title": types.Schema(
                        type=types.Type.STRING,
                        description=(
                            "عنوان یک بخش مرتبط با موضوع "
                            "(مثلا: علائم، روش استفاده، مراقبت‌های لازم)."
                        ),
                    ),
                    "details": types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(type=types.Type.STRING),
                        description=(
                            "لیستی از نکات و توضیحات مربوط به این بخش. "
                            "هر مورد یک پاراگراف یا یک آیتم لیست است."
                        ),
                    ),
                },
                required=["title", "details"],
            ),
        ),
    },
    required=["topicName", "introduction", "sections"],
)


def validate_topic(topic: Optional[str]) -> str:
    """
    Return the trimmed topic, rejecting empty or whitespace-only input.

    Raises:
        InvalidInputError: If nothing but whitespace was entered
    """
    if topic is None or not topic.strip():
        raise InvalidInputError(EMPTY_TOPIC_MESSAGE)
    return topic.strip()


def build_system_instruction(audience: Audience) -> str:
    """Select the system instruction for the audience."""
    if audience == Audience.PROFESSIONAL:
        return PROFESSIONAL_INSTRUCTION
    return GENERAL_INSTRUCTION


def build_prompt(topic: str, audience: Audience) -> str:
    """Build the user prompt embedding the topic."""
    if audience == Audience.PROFESSIONAL:
        return f'اطلاعات کامل و تخصصی برای کادر درمان در مورد موضوع "{topic}" ارائه بده.'
    return f'اطلاعات کامل و قابل فهم برای عموم مردم در مورد موضوع "{topic}" ارائه بده.'


def parse_health_info(raw_text: Optional[str]) -> HealthTopicInfo:
    """
    Parse and validate the generation service's response text.

    The declared response schema is never trusted: every field is checked
    and a deviation is rejected rather than coerced.

    Args:
        raw_text: Raw response text

    Returns:
        Validated HealthTopicInfo

    Raises:
        UpstreamFormatError: If the text is not JSON or has the wrong shape
    """
    if raw_text is None:
        logger.error("Empty response from generation service")
        raise UpstreamFormatError(INVALID_JSON_MESSAGE)

    json_text = raw_text.strip()
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse JSON response", response=json_text[:500], error=str(e))
        raise UpstreamFormatError(INVALID_JSON_MESSAGE) from e

    try:
        return HealthTopicInfo.model_validate(data)
    except ValidationError as e:
        # Errors located inside a section get their own message
        in_section = any(
            len(err["loc"]) > 1 and err["loc"][0] == "sections"
            for err in e.errors()
        )
        logger.error(
            "Invalid data structure received from generation service",
            in_section=in_section,
            errors=e.errors(include_url=False, include_input=False)
        )
        message = INVALID_SECTIONS_MESSAGE if in_section else INVALID_STRUCTURE_MESSAGE
        raise UpstreamFormatError(message) from e


def _status_code(error: BaseException) -> Optional[int]:
    """Status code carried by an error object, if any."""
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def describe_service_error(error: BaseException) -> UpstreamServiceError:
    """
    Map a transport or service failure to a user-facing error.

    Tries, in order: a JSON error payload embedded in the message, a status
    code on the error object, then the plain message text.
    """
    error_message = str(error)

    try:
        payload = json.loads(error_message)
    except (json.JSONDecodeError, TypeError):
        payload = None

    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        code = payload["error"].get("code")
        if code == 500:
            return UpstreamServiceError(INTERNAL_ERROR_MESSAGE, status_code=500)
        upstream_message = payload["error"].get("message", "")
        return UpstreamServiceError(
            "سرویس با خطا پاسخ داد. لطفاً ورودی خود را بررسی کرده یا دوباره تلاش کنید. "
            f"(پیام: {upstream_message})",
            status_code=code if isinstance(code, int) else None
        )

    status = _status_code(error)
    if status is not None:
        message = f"سرویس هوش مصنوعی با خطا مواجه شد. (کد خطا: {status})"
        if status >= 500:
            message += " این ممکن است یک مشکل موقتی در سرویس باشد. لطفاً لحظاتی بعد دوباره امتحان کنید."
        elif 400 <= status < 500:
            message += " لطفاً ورودی خود را بررسی کرده و دوباره تلاش کنید."
        return UpstreamServiceError(message, status_code=status)

    if error_message:
        return UpstreamServiceError(f"خطا در دریافت اطلاعات: {error_message}")
    return UpstreamServiceError(UNEXPECTED_ERROR_MESSAGE)


class HealthInfoEngine:
    """
    Gemini integration for health topic explanations.

    One call to :meth:`fetch` is exactly one round trip to the generation
    service: no retries, no streaming, no partial results.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ):
        """
        Initialize the engine.

        Args:
            client: Preconfigured ``genai.Client`` (created from settings if omitted)
            model: Model identifier override
            temperature: Sampling temperature override
        """
        self.model = model or settings.gemini_model
        self.temperature = (
            settings.generation_temperature if temperature is None else temperature
        )
        self.client = client if client is not None else self._create_client()

    def _create_client(self) -> Optional[Any]:
        """Create the Gemini client from the configured API credential."""
        if not settings.gemini_configured:
            logger.warning("Gemini API key not configured")
            return None

        client = genai.Client(
            api_key=settings.gemini_api_key,
            http_options=types.HttpOptions(timeout=settings.request_timeout_ms)
        )
        logger.info("Generation service client initialized", model=self.model)
        return client

    def build_config(self, audience: Audience) -> types.GenerateContentConfig:
        """Build the generation config for the audience."""
        return types.GenerateContentConfig(
            system_instruction=build_system_instruction(audience),
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
            temperature=self.temperature,
        )

    async def fetch(self, topic: str, audience: Audience) -> HealthTopicInfo:
        """
        Fetch a structured explanation of a health topic.

        Args:
            topic: Health topic entered by the user
            audience: Target reader profile

        Returns:
            Validated HealthTopicInfo

        Raises:
            InvalidInputError: Empty or whitespace-only topic
            UpstreamFormatError: Response is not a valid answer
            UpstreamServiceError: Transport or service failure
        """
        topic = validate_topic(topic)

        if self.client is None:
            logger.error("Fetch attempted without generation service credential")
            raise UpstreamServiceError(NOT_CONFIGURED_MESSAGE)

        logger.info("Fetching health information", topic=topic, audience=audience.value)

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=build_prompt(topic, audience),
                config=self.build_config(audience),
            )
            info = parse_health_info(response.text)
        except HooshyarError:
            raise
        except Exception as e:
            logger.error("Error fetching health information", error=str(e), error_type=type(e).__name__)
            raise describe_service_error(e) from e

        logger.info(
            "Health information received",
            topic=info.topic_name,
            sections=len(info.sections)
        )
        return info

    def get_status(self) -> Dict[str, Any]:
        """Get engine status information."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "configured": self.client is not None
        }


# Module-level singleton
_engine_instance: Optional[HealthInfoEngine] = None


def get_health_info_engine() -> HealthInfoEngine:
    """Get or create singleton engine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = HealthInfoEngine()
    return _engine_instance
