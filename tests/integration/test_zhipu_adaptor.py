"""
Tests for the Zhipu v4 channel adaptor.

Covers endpoint dispatch, request conversion per modality and
response handling per mode. Upstream calls use httpx.MockTransport.
"""
import json

import httpx
import pytest

from relay_gateway import relay, relay_passthrough
from relay_gateway.adapters import ZhipuAdaptor
from relay_gateway.core.config import ChannelConfig, ChannelType
from relay_gateway.core.constants import RelayFormat, RelayMode
from relay_gateway.core.context import RelayInfo
from relay_gateway.core.errors import (
    ConversionError,
    ProviderReportedError,
    RequestValidationError,
    UpstreamTransportError,
)
from relay_gateway.models.request import (
    AudioRequest,
    ChatRequest,
    ElementRequest,
    EmbeddingRequest,
    IdentifyFaceRequest,
    ImageRequest,
    Message,
    TaskSubmitRequest,
)
from relay_gateway.pricing import PriceData

BASE = "https://open.bigmodel.cn"


def make_adaptor(**kwargs) -> ZhipuAdaptor:
    return ZhipuAdaptor(ChannelConfig(channel_type=ChannelType.ZHIPU_V4, api_key="sk-test", **kwargs))


def make_info(request=None, mode=RelayMode.CHAT_COMPLETIONS, fmt=RelayFormat.OPENAI, **kwargs) -> RelayInfo:
    kwargs.setdefault("estimate_prompt_tokens", 7)
    return RelayInfo(
        channel=ChannelConfig(channel_type=ChannelType.ZHIPU_V4, api_key="sk-test"),
        relay_mode=mode,
        relay_format=fmt,
        request=request,
        **kwargs,
    )


def chat_request(**kwargs) -> ChatRequest:
    return ChatRequest(
        model="glm-4.6",
        messages=[
            Message(role="system", content="You are helpful"),
            Message(role="user", content="Hello"),
        ],
        **kwargs,
    )


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRequestURL:
    """Test endpoint resolution."""

    @pytest.mark.parametrize("mode,path", [
        (RelayMode.CHAT_COMPLETIONS, "/api/paas/v4/chat/completions"),
        (RelayMode.EMBEDDINGS, "/api/paas/v4/embeddings"),
        (RelayMode.IMAGES_GENERATIONS, "/api/paas/v4/images/generations"),
        (RelayMode.AUDIO_SPEECH, "/api/paas/v4/audio/tts"),
        (RelayMode.ELEMENT_CREATE, "/api/paas/v4/images/custom-elements"),
        (RelayMode.IDENTIFY_FACE, "/api/paas/v4/videos/identify-face"),
    ])
    def test_mode_paths(self, mode, path):
        """Each mode has its own endpoint."""
        assert make_adaptor().get_request_url(make_info(mode=mode)) == BASE + path

    def test_unknown_mode_falls_back_to_chat(self):
        """Unmapped modes use the chat endpoint."""
        url = make_adaptor().get_request_url(make_info(mode=RelayMode.TASK_FETCH))
        assert url == BASE + "/api/paas/v4/chat/completions"

    def test_claude_format_takes_precedence(self):
        """Claude format always routes to messages."""
        url = make_adaptor().get_request_url(
            make_info(mode=RelayMode.IMAGES_GENERATIONS, fmt=RelayFormat.CLAUDE)
        )
        assert url == BASE + "/api/anthropic/v1/messages"

    def test_custom_base_url(self):
        """Configured base URL replaces the default."""
        adaptor = make_adaptor(base_url="https://proxy.internal/")
        assert adaptor.get_request_url(make_info()) == "https://proxy.internal/api/paas/v4/chat/completions"

    def test_special_plan_overrides(self):
        """A special plan base switches roots per format."""
        adaptor = make_adaptor(base_url="glm-coding-plan")
        assert adaptor.get_request_url(make_info(fmt=RelayFormat.CLAUDE)) == \
            "https://open.bigmodel.cn/api/anthropic/v1/messages"
        assert adaptor.get_request_url(make_info()) == \
            "https://open.bigmodel.cn/api/coding/paas/v4/chat/completions"
        assert adaptor.get_request_url(make_info(mode=RelayMode.EMBEDDINGS)) == \
            "https://open.bigmodel.cn/api/coding/paas/v4/embeddings"

    def test_explicit_overrides(self):
        """Per-channel overrides apply only to their format."""
        adaptor = make_adaptor(base_overrides={RelayFormat.CLAUDE: "https://claude.example.com"})
        assert adaptor.get_request_url(make_info(fmt=RelayFormat.CLAUDE)) == \
            "https://claude.example.com/v1/messages"
        assert adaptor.get_request_url(make_info()) == BASE + "/api/paas/v4/chat/completions"

    def test_headers(self):
        """Bearer auth header is set."""
        headers = make_adaptor().build_request_header(make_info())
        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["Content-Type"] == "application/json"


class TestConvertRequest:
    """Test canonical to wire conversion."""

    def test_chat_openai_clamps_top_p(self):
        """top_p of 1 is lowered to 0.99."""
        body = json.loads(make_adaptor().convert_request(make_info(chat_request(top_p=1.0))))
        assert body["top_p"] == 0.99
        assert len(body["messages"]) == 2

    def test_chat_claude_format(self):
        """Claude format extracts the system prompt."""
        body = json.loads(make_adaptor().convert_request(
            make_info(chat_request(max_tokens=100), fmt=RelayFormat.CLAUDE)
        ))
        assert body["system"] == "You are helpful"
        assert body["messages"] == [{"role": "user", "content": "Hello"}]
        assert body["max_tokens"] == 100

    def test_gemini_not_implemented(self):
        """Gemini requests raise ConversionError."""
        with pytest.raises(ConversionError):
            make_adaptor().convert_request(make_info(chat_request(), fmt=RelayFormat.GEMINI))

    def test_unsupported_modality(self):
        """Video requests are not served by the sync adaptor."""
        with pytest.raises(ConversionError):
            make_adaptor().convert_request(make_info(TaskSubmitRequest(prompt="x")))

    def test_missing_request(self):
        """No request is a validation error."""
        with pytest.raises(RequestValidationError):
            make_adaptor().convert_request(make_info(None))

    def test_image_fields(self):
        """Image fields copy across; absent tri-states stay absent."""
        request = ImageRequest(model="cogview-4", prompt="a red fox", n=2, quality="hd", size="1024x1024")
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.IMAGES_GENERATIONS)))
        assert body == {"model": "cogview-4", "prompt": "a red fox", "n": 2, "quality": "hd", "size": "1024x1024"}

    def test_image_json_scalars(self):
        """JSON-encoded watermark and user id are decoded."""
        request = ImageRequest(model="cogview-4", prompt="x", watermark_enabled="false", user_id='"user-42"')
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.IMAGES_GENERATIONS)))
        assert body["watermark_enabled"] is False
        assert body["user_id"] == "user-42"

    def test_image_bad_scalar_ignored(self):
        """Undecodable scalars are left unset."""
        request = ImageRequest(model="cogview-4", prompt="x", watermark_enabled="maybe")
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.IMAGES_GENERATIONS)))
        assert "watermark_enabled" not in body

    def test_image_extra_allow_list(self):
        """Only fields declared on the wire model are merged from extras."""
        request = ImageRequest(
            model="cogview-4",
            prompt="x",
            ratio="16:9",
            seed=42,
            sequential_image_generation="auto",
            sequential_image_generation_options={"max_images": 3, "response_format": "url"},
            not_a_field="dropped",
        )
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.IMAGES_GENERATIONS)))
        assert body["ratio"] == "16:9"
        assert body["seed"] == 42
        assert body["sequential_image_generation_options"] == {"max_images": 3, "response_format": "url"}
        assert "not_a_field" not in body

    def test_image_extra_invalid_value_dropped(self):
        """An extra with the wrong type does not clobber the request."""
        request = ImageRequest(model="cogview-4", prompt="x", seed="not-a-number")
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.IMAGES_GENERATIONS)))
        assert "seed" not in body
        assert body["prompt"] == "x"

    def test_audio_native_names_preferred(self):
        """Provider-native names win over OpenAI aliases."""
        request = AudioRequest(
            model="glm-tts", input="alias", text="native",
            voice="alloy", voice_id="tongtong", speed=1.5, voice_speed=0.8,
            voice_language="zh",
        )
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.AUDIO_SPEECH)))
        assert body == {
            "model": "glm-tts", "text": "native", "voice_id": "tongtong",
            "voice_language": "zh", "voice_speed": 0.8,
        }

    def test_audio_openai_aliases(self):
        """OpenAI names are used when native ones are empty."""
        request = AudioRequest(model="glm-tts", input="hello", voice="alloy", speed=1.25)
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.AUDIO_SPEECH)))
        assert body == {"model": "glm-tts", "text": "hello", "voice_id": "alloy", "voice_speed": 1.25}

    def test_embedding_passthrough(self):
        """Embeddings are forwarded unchanged."""
        request = EmbeddingRequest(model="embedding-3", input=["a", "b"])
        body = json.loads(make_adaptor().convert_request(make_info(request, mode=RelayMode.EMBEDDINGS)))
        assert body == {"model": "embedding-3", "input": ["a", "b"]}


class TestDoResponse:
    """Test response dispatch by format and mode."""

    @pytest.mark.asyncio
    async def test_chat_usage(self):
        """Chat responses are forwarded with upstream usage."""
        upstream = {
            "id": "chatcmpl-1", "model": "glm-4.6",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12},
        }
        response = httpx.Response(200, json=upstream)
        result = await make_adaptor().do_response(make_info(chat_request()), response)
        assert result.usage.total_tokens == 12
        assert json.loads(result.body) == upstream

    @pytest.mark.asyncio
    async def test_claude_usage(self):
        """Claude format uses the Claude handler."""
        upstream = {
            "id": "msg_1", "type": "message", "model": "glm-4.6",
            "content": [{"type": "text", "text": "Hi"}],
            "usage": {"input_tokens": 10, "output_tokens": 3},
        }
        response = httpx.Response(200, json=upstream)
        result = await make_adaptor().do_response(make_info(chat_request(), fmt=RelayFormat.CLAUDE), response)
        assert result.usage.prompt_tokens == 10
        assert result.usage.completion_tokens == 3
        assert result.usage.total_tokens == 13

    @pytest.mark.asyncio
    async def test_tts_passthrough(self):
        """TTS bodies are forwarded unchanged with estimated usage."""
        upstream = b'{"task_id":"tts-1","audio_url":"https://cdn.example.com/a.mp3"}'
        response = httpx.Response(200, content=upstream)
        info = make_info(AudioRequest(model="glm-tts", input="hello"), mode=RelayMode.AUDIO_SPEECH)
        result = await make_adaptor().do_response(info, response)
        assert result.body == upstream
        assert result.usage.prompt_tokens == 7
        assert result.usage.total_tokens == 7

    @pytest.mark.asyncio
    async def test_image_normalized(self):
        """Image responses go through the normalizer and adjust flat price."""
        upstream = {"created": 1727000000, "data": [{"url": "https://cdn.example.com/a.png"}]}
        info = make_info(
            ImageRequest(model="cogview-4", prompt="x", n=2, response_format="url"),
            mode=RelayMode.IMAGES_GENERATIONS,
            price_data=PriceData(model_price=0.1, use_price=True),
        )
        result = await make_adaptor().do_response(info, httpx.Response(200, json=upstream))
        assert json.loads(result.body)["data"] == [{"url": "https://cdn.example.com/a.png"}]
        assert info.price_data.model_price == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_chat_error_status(self):
        """Non-200 chat responses carry the provider's error."""
        response = httpx.Response(429, json={"error": {"code": "1302", "message": "rate limited"}})
        with pytest.raises(ProviderReportedError) as exc_info:
            await make_adaptor().do_response(make_info(chat_request()), response)
        assert exc_info.value.status_code == 429
        assert exc_info.value.code == "1302"


class TestRelayFlows:
    """Test full calls through the mock transport."""

    @pytest.mark.asyncio
    async def test_relay_chat(self):
        """A chat call reaches the chat endpoint with auth."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "ok"}}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
            })

        async with mock_client(handler) as client:
            result = await relay(make_adaptor(), make_info(chat_request()), client=client)
        assert seen["url"] == BASE + "/api/paas/v4/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "glm-4.6"
        assert result.usage.total_tokens == 4

    @pytest.mark.asyncio
    async def test_relay_upstream_error(self):
        """Upstream failures keep the provider status."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"code": "1210", "message": "bad params", "type": "invalid"}})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderReportedError) as exc_info:
                await relay(make_adaptor(), make_info(chat_request()), client=client)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "bad params"
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_relay_transport_error(self):
        """Network failures raise a retryable transport error."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(UpstreamTransportError) as exc_info:
                await relay(make_adaptor(), make_info(chat_request()), client=client)
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_element_passthrough_with_model_mapping(self):
        """Element requests are forwarded as-is with the mapped model."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"element_id": "el-1"})

        request = ElementRequest(model="kling-element", element_name="hero", element_frontal_image="https://x/y.png")
        info = make_info(request, mode=RelayMode.ELEMENT_CREATE)
        async with mock_client(handler) as client:
            result = await relay_passthrough(
                make_adaptor(), info, client=client,
                model_mapping={"kling-element": "kling-element-v2"},
            )
        assert seen["url"] == BASE + "/api/paas/v4/images/custom-elements"
        assert seen["body"] == {
            "model": "kling-element-v2",
            "element_name": "hero",
            "element_frontal_image": "https://x/y.png",
        }
        assert request.model == "kling-element"
        assert json.loads(result.body) == {"element_id": "el-1"}
        assert result.usage.prompt_tokens == 7

    @pytest.mark.asyncio
    async def test_identify_face_passthrough(self):
        """Identify-face requests reach their endpoint."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"faces": []})

        info = make_info(IdentifyFaceRequest(model="kling-face", video_id="v-1"), mode=RelayMode.IDENTIFY_FACE)
        async with mock_client(handler) as client:
            await relay_passthrough(make_adaptor(), info, client=client)
        assert seen["url"] == BASE + "/api/paas/v4/videos/identify-face"

    def test_fresh_adaptor_per_call(self):
        """The registry never hands out the same adaptor twice."""
        from relay_gateway import get_registry

        config = ChannelConfig(channel_type=ChannelType.ZHIPU_V4, api_key="sk-test")
        first = get_registry().create_adaptor(config)
        second = get_registry().create_adaptor(config)
        assert isinstance(first, ZhipuAdaptor)
        assert first is not second


OPENAI_SSE = (
    b'data: {"id":"1","choices":[{"index":0,"delta":{"content":"Hi"}}]}\n\n'
    b'data: {"id":"1","choices":[{"index":0,"delta":{},"finish_reason":"stop"}],'
    b'"usage":{"prompt_tokens":9,"completion_tokens":2,"total_tokens":11}}\n\n'
    b"data: [DONE]\n\n"
)

CLAUDE_SSE = (
    b"event: message_start\n"
    b'data: {"type":"message_start","message":{"id":"msg_1","usage":{"input_tokens":12,"output_tokens":1}}}\n\n'
    b"event: content_block_delta\n"
    b'data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}\n\n'
    b"event: message_delta\n"
    b'data: {"type":"message_delta","delta":{"stop_reason":"end_turn"},"usage":{"output_tokens":5}}\n\n'
    b"event: message_stop\n"
    b'data: {"type":"message_stop"}\n\n'
)


def sse_client(body: bytes) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})
    return mock_client(handler)


class TestStreaming:
    """Test streaming chat responses."""

    @pytest.mark.asyncio
    async def test_openai_stream_forwarded(self):
        """SSE bodies are forwarded unchanged with usage from the last chunk."""
        async with sse_client(OPENAI_SSE) as client:
            result = await relay(make_adaptor(), make_info(chat_request(stream=True)), client=client)
        assert result.body == OPENAI_SSE
        assert result.content_type == "text/event-stream"
        assert result.usage.prompt_tokens == 9
        assert result.usage.completion_tokens == 2
        assert result.usage.total_tokens == 11

    @pytest.mark.asyncio
    async def test_claude_stream_forwarded(self):
        """Claude streams combine start and delta usage."""
        info = make_info(chat_request(stream=True), fmt=RelayFormat.CLAUDE)
        async with sse_client(CLAUDE_SSE) as client:
            result = await relay(make_adaptor(), info, client=client)
        assert result.body == CLAUDE_SSE
        assert result.usage.prompt_tokens == 12
        assert result.usage.completion_tokens == 5
        assert result.usage.total_tokens == 17

    @pytest.mark.asyncio
    async def test_stream_without_usage_uses_estimate(self):
        """Streams that never report usage fall back to the prompt estimate."""
        body = b'data: {"id":"1","choices":[{"index":0,"delta":{"content":"Hi"}}]}\n\ndata: [DONE]\n\n'
        async with sse_client(body) as client:
            result = await relay(make_adaptor(), make_info(chat_request(stream=True)), client=client)
        assert result.body == body
        assert result.usage.prompt_tokens == 7
        assert result.usage.total_tokens == 7

    def test_stream_flag_forwarded(self):
        """The stream flag reaches the upstream body."""
        body = json.loads(make_adaptor().convert_request(make_info(chat_request(stream=True))))
        assert body["stream"] is True
