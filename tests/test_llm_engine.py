"""
Tests for the health information engine.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from hooshyar.core.errors import (
    InvalidInputError,
    UpstreamFormatError,
    UpstreamServiceError,
)
from hooshyar.core.llm_engine import (
    EMPTY_TOPIC_MESSAGE,
    GENERAL_INSTRUCTION,
    INTERNAL_ERROR_MESSAGE,
    INVALID_JSON_MESSAGE,
    INVALID_SECTIONS_MESSAGE,
    INVALID_STRUCTURE_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    PROFESSIONAL_INSTRUCTION,
    UNEXPECTED_ERROR_MESSAGE,
    HealthInfoEngine,
    build_prompt,
    build_system_instruction,
    describe_service_error,
    parse_health_info,
    validate_topic,
)
from hooshyar.models.schemas import Audience


def make_client(text=None, error=None):
    """Fake genai client exposing client.aio.models.generate_content."""
    client = MagicMock()
    if error is not None:
        client.aio.models.generate_content = AsyncMock(side_effect=error)
    else:
        client.aio.models.generate_content = AsyncMock(
            return_value=SimpleNamespace(text=text)
        )
    return client


class StatusError(Exception):
    """Error carrying a status code attribute, like SDK API errors."""

    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class TestValidateTopic:
    """Test topic validation."""

    @pytest.mark.parametrize("topic", ["", "   ", "\n\t", None])
    def test_empty_topics_rejected(self, topic):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_topic(topic)
        assert exc_info.value.user_message == EMPTY_TOPIC_MESSAGE

    def test_topic_trimmed(self):
        assert validate_topic("  دیابت \n") == "دیابت"


class TestPrompts:
    """Test audience-specific prompt selection."""

    def test_general_instruction(self):
        assert build_system_instruction(Audience.GENERAL) == GENERAL_INSTRUCTION
        assert "قاشق چای‌خوری" in GENERAL_INSTRUCTION

    def test_professional_instruction(self):
        assert build_system_instruction(Audience.PROFESSIONAL) == PROFESSIONAL_INSTRUCTION
        assert "دوزینگ" in PROFESSIONAL_INSTRUCTION

    def test_prompt_embeds_topic(self):
        for audience in Audience:
            assert '"آسم"' in build_prompt("آسم", audience)

    def test_prompts_differ_by_audience(self):
        assert build_prompt("آسم", Audience.GENERAL) != build_prompt("آسم", Audience.PROFESSIONAL)


class TestParseHealthInfo:
    """Test response validation."""

    def test_well_formed_response_accepted_unchanged(self, sample_payload):
        info = parse_health_info(json.dumps(sample_payload, ensure_ascii=False))

        assert info.model_dump(by_alias=True) == sample_payload

    def test_surrounding_whitespace_ignored(self, sample_payload):
        info = parse_health_info("\n  " + json.dumps(sample_payload) + "  \n")
        assert info.topic_name == "دیابت"

    def test_extra_keys_ignored(self, sample_payload):
        sample_payload["source"] = "model"
        info = parse_health_info(json.dumps(sample_payload))
        assert info.model_dump(by_alias=True) == {
            k: v for k, v in sample_payload.items() if k != "source"
        }

    def test_invalid_json_rejected(self):
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info("this is prose, not JSON")
        assert exc_info.value.user_message == INVALID_JSON_MESSAGE

    def test_missing_text_rejected(self):
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(None)
        assert exc_info.value.user_message == INVALID_JSON_MESSAGE

    def test_missing_sections_rejected(self, sample_payload):
        del sample_payload["sections"]
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(json.dumps(sample_payload))
        assert exc_info.value.user_message == INVALID_STRUCTURE_MESSAGE

    def test_non_object_rejected(self):
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info("[1, 2, 3]")
        assert exc_info.value.user_message == INVALID_STRUCTURE_MESSAGE

    def test_numeric_topic_name_not_coerced(self, sample_payload):
        sample_payload["topicName"] = 42
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(json.dumps(sample_payload))
        assert exc_info.value.user_message == INVALID_STRUCTURE_MESSAGE

    def test_non_string_detail_rejected(self, sample_payload):
        sample_payload["sections"][0]["details"].append(7)
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(json.dumps(sample_payload))
        assert exc_info.value.user_message == INVALID_SECTIONS_MESSAGE

    def test_details_as_string_rejected(self, sample_payload):
        sample_payload["sections"][0]["details"] = "تکرر ادرار"
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(json.dumps(sample_payload))
        assert exc_info.value.user_message == INVALID_SECTIONS_MESSAGE

    def test_section_without_title_rejected(self, sample_payload):
        del sample_payload["sections"][0]["title"]
        with pytest.raises(UpstreamFormatError) as exc_info:
            parse_health_info(json.dumps(sample_payload))
        assert exc_info.value.user_message == INVALID_SECTIONS_MESSAGE


class TestDescribeServiceError:
    """Test the three-tier error message fallback."""

    def test_embedded_json_internal_error(self):
        error = Exception(json.dumps({"error": {"code": 500, "message": "boom"}}))
        result = describe_service_error(error)

        assert result.user_message == INTERNAL_ERROR_MESSAGE
        assert result.status_code == 500

    def test_embedded_json_client_error_includes_message(self):
        error = Exception(json.dumps({"error": {"code": 400, "message": "bad prompt"}}))
        result = describe_service_error(error)

        assert "bad prompt" in result.user_message
        assert "ورودی خود را بررسی" in result.user_message
        assert result.status_code == 400

    def test_status_code_server_error(self):
        result = describe_service_error(StatusError("unavailable", 503))

        assert "503" in result.user_message
        assert "موقتی" in result.user_message
        assert result.status_code == 503

    def test_status_code_client_error(self):
        result = describe_service_error(StatusError("forbidden", 403))

        assert "403" in result.user_message
        assert "ورودی خود را بررسی" in result.user_message

    def test_plain_message(self):
        result = describe_service_error(ConnectionError("connection reset"))

        assert result.user_message == "خطا در دریافت اطلاعات: connection reset"
        assert result.status_code is None

    def test_no_message(self):
        result = describe_service_error(RuntimeError())
        assert result.user_message == UNEXPECTED_ERROR_MESSAGE


class TestHealthInfoEngine:
    """Test the engine's single round trip."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, sample_payload):
        client = make_client(text=json.dumps(sample_payload))
        engine = HealthInfoEngine(client=client, model="gemini-test")

        info = await engine.fetch("دیابت", Audience.GENERAL)

        assert info.topic_name == "دیابت"
        assert client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_request_declares_schema_and_low_temperature(self, sample_payload):
        client = make_client(text=json.dumps(sample_payload))
        engine = HealthInfoEngine(client=client, model="gemini-test")

        await engine.fetch("دیابت", Audience.PROFESSIONAL)

        kwargs = client.aio.models.generate_content.await_args.kwargs
        config = kwargs["config"]
        assert kwargs["model"] == "gemini-test"
        assert '"دیابت"' in kwargs["contents"]
        assert config.system_instruction == PROFESSIONAL_INSTRUCTION
        assert config.response_mime_type == "application/json"
        assert config.temperature == 0.2
        assert set(config.response_schema.required) == {"topicName", "introduction", "sections"}

    @pytest.mark.asyncio
    async def test_empty_topic_never_requests(self):
        client = make_client(text="{}")
        engine = HealthInfoEngine(client=client)

        with pytest.raises(InvalidInputError):
            await engine.fetch("   ", Audience.GENERAL)

        client.aio.models.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_format_error_surfaced_verbatim(self):
        client = make_client(text="not json")
        engine = HealthInfoEngine(client=client)

        with pytest.raises(UpstreamFormatError) as exc_info:
            await engine.fetch("دیابت", Audience.GENERAL)

        assert exc_info.value.user_message == INVALID_JSON_MESSAGE

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self):
        client = make_client(error=StatusError("server error", 500))
        engine = HealthInfoEngine(client=client)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await engine.fetch("دیابت", Audience.GENERAL)

        assert exc_info.value.status_code == 500
        assert client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_credential(self):
        engine = HealthInfoEngine()

        assert engine.client is None
        with pytest.raises(UpstreamServiceError) as exc_info:
            await engine.fetch("دیابت", Audience.GENERAL)
        assert exc_info.value.user_message == NOT_CONFIGURED_MESSAGE

    def test_status(self):
        engine = HealthInfoEngine(client=make_client(), model="gemini-test", temperature=0.1)
        status = engine.get_status()

        assert status == {"model": "gemini-test", "temperature": 0.1, "configured": True}
