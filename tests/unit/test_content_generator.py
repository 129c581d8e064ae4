"""Unit tests for AI content generation and the LLM client."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.services.content_generator import (
    ContentGenerator,
    simplify_stock_results,
    slugify,
)
from baydigital.services.errors import ExternalServiceError, InvalidRequestError
from baydigital.services.llm_client import (
    PARSE_FAILURE_MESSAGE,
    LLMClient,
    extract_json_text,
    parse_json_response,
    resolve_env,
)
from baydigital.services.stock_images import StockImageService


def _llm(handler, tmp_path) -> LLMClient:
    client = LLMClient(
        config_path=str(tmp_path / "missing.yaml"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    client.api_key = "test-key"
    return client


def _reply(text: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "content": [{"type": "text", "text": text}],
            "usage": {"input_tokens": 10, "output_tokens": 20},
        },
    )


@pytest.mark.unit
class TestTextHelpers:
    """Unit tests for slug and JSON reply helpers."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hello, World!", "hello-world"),
            ("  Top 10   Coffee -- Tips ", "top-10-coffee-tips"),
            ("-Already-Hyphenated-", "already-hyphenated"),
        ],
    )
    def test_slugify(self, title: str, expected: str) -> None:
        assert slugify(title) == expected

    def test_fenced_json_is_unwrapped(self) -> None:
        content = '```json\n{"title": "A", "nested": {"b": 1}}\n```'
        assert extract_json_text(content) == '{"title": "A", "nested": {"b": 1}}'
        assert parse_json_response(content) == {"title": "A", "nested": {"b": 1}}

    def test_unparseable_reply_raises(self) -> None:
        with pytest.raises(InvalidRequestError, match=PARSE_FAILURE_MESSAGE):
            parse_json_response("Sure! Here is your post.")

    def test_non_object_reply_raises(self) -> None:
        with pytest.raises(InvalidRequestError):
            parse_json_response("[1, 2, 3]")

    def test_resolve_env_with_default(self, monkeypatch) -> None:
        monkeypatch.setenv("BAY_TEST_MODEL", "claude-test")
        monkeypatch.delenv("BAY_TEST_MISSING", raising=False)

        assert resolve_env("${env.BAY_TEST_MODEL}") == "claude-test"
        assert resolve_env("${env.BAY_TEST_MISSING:-fallback}") == "fallback"
        assert resolve_env(42) == 42

    def test_simplify_stock_results(self) -> None:
        data = {
            "data": [
                {"id": 7, "image": {"source": {"url": "https://img.example.com/7.jpg"}}},
                {"id": 8, "url": "https://img.example.com/8.jpg", "thumbnail": "https://img.example.com/8s.jpg"},
            ]
        }

        assert simplify_stock_results(data) == [
            {"id": 7, "url": "https://img.example.com/7.jpg", "thumbnail": "https://img.example.com/7.jpg"},
            {"id": 8, "url": "https://img.example.com/8.jpg", "thumbnail": "https://img.example.com/8s.jpg"},
        ]


@pytest.mark.unit
class TestLLMClient:
    """Unit tests for the completion client."""

    @pytest.mark.asyncio
    async def test_request_shape(self, tmp_path) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return _reply("Hi there")

        client = _llm(handler, tmp_path)

        text = await client.generate("Say hi", system_prompt="Be brief", max_tokens=50)

        assert text == "Hi there"
        assert captured["path"] == "/v1/messages"
        assert captured["headers"]["x-api-key"] == "test-key"
        assert captured["headers"]["anthropic-version"] == "2023-06-01"
        assert captured["body"]["system"] == "Be brief"
        assert captured["body"]["max_tokens"] == 50
        assert captured["body"]["messages"] == [{"role": "user", "content": "Say hi"}]
        await client.close()

    @pytest.mark.asyncio
    async def test_vendor_error(self, tmp_path) -> None:
        client = _llm(lambda request: httpx.Response(529, json={"error": "overloaded"}), tmp_path)

        with pytest.raises(ExternalServiceError, match="AI API error: 529"):
            await client.generate("Say hi")
        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_vendor_is_external_error(self, tmp_path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _llm(handler, tmp_path)

        with pytest.raises(ExternalServiceError, match="AI API unreachable") as exc_info:
            await client.generate("Say hi")

        assert exc_info.value.details["service"] == "llm"
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_reply_is_external_error(self, tmp_path) -> None:
        client = _llm(lambda request: httpx.Response(200, text="<html>gateway</html>"), tmp_path)

        with pytest.raises(ExternalServiceError, match="not valid JSON"):
            await client.generate("Say hi")
        await client.close()

    def test_config_file_overrides_defaults(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("BAY_TEST_KEY", "from-env")
        config = tmp_path / "bay-digital.yaml"
        config.write_text(
            "providers:\n"
            "  llm:\n"
            "    model: claude-custom\n"
            "    api_key: ${env.BAY_TEST_KEY}\n"
            "    max_tokens: 2048\n"
        )

        client = LLMClient(config_path=str(config), http_client=MagicMock())

        assert client.model == "claude-custom"
        assert client.api_key == "from-env"
        assert client.max_tokens == 2048
        assert client.base_url == "https://api.anthropic.com"


@pytest.mark.unit
class TestContentGenerator:
    """Unit tests for blog, social post and caption generation."""

    @pytest.mark.asyncio
    async def test_blog_post_requires_site(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user()
        llm = MagicMock(spec=LLMClient)
        generator = ContentGenerator(llm_client=llm, db_session=async_db_session)

        with pytest.raises(InvalidRequestError, match="No site found for user"):
            await generator.generate_blog_post(user.id, "Summer menu")

    @pytest.mark.asyncio
    async def test_blog_post_requires_topic(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user()
        generator = ContentGenerator(llm_client=MagicMock(spec=LLMClient), db_session=async_db_session)

        with pytest.raises(InvalidRequestError, match="Topic is required"):
            await generator.generate_blog_post(user.id, "   ")

    @pytest.mark.asyncio
    async def test_blog_post_preview(
        self, async_db_session: AsyncSession, create_user, create_site, tmp_path
    ) -> None:
        """Test that a fenced model reply becomes a preview with a slug."""
        user = await create_user()
        await create_site(user)
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            blog = {
                "title": "Five Summer Drinks You'll Love",
                "meta_title": "Summer Drinks",
                "meta_description": "Cool off this summer.",
                "keywords": ["summer", "drinks"],
                "body_html": "<h2>Lemonade</h2><p>Classic.</p>",
            }
            return _reply(f"```json\n{json.dumps(blog)}\n```")

        generator = ContentGenerator(llm_client=_llm(handler, tmp_path), db_session=async_db_session)

        preview = await generator.generate_blog_post(
            user.id,
            "Summer drinks",
            tone="friendly",
            images=["https://img.example.com/1.jpg"],
            document_file={"data": "JVBERi0=", "mime_type": "application/pdf"},
        )

        assert preview["slug"] == "five-summer-drinks-youll-love"
        assert preview["keywords"] == ["summer", "drinks"]
        assert preview["images"] == ["https://img.example.com/1.jpg"]
        content = captured["body"]["messages"][0]["content"]
        assert content[0]["type"] == "document"
        assert content[0]["source"]["media_type"] == "application/pdf"
        assert "friendly" in content[-1]["text"]
        assert captured["body"]["max_tokens"] == 8192

    @pytest.mark.asyncio
    async def test_social_post_with_stock_images(self) -> None:
        llm = MagicMock(spec=LLMClient)
        llm.generate_json = AsyncMock(
            return_value={
                "post_text": "Iced coffee season! #coffee",
                "headline": "Chill Out",
                "image_search_query": "iced coffee",
            }
        )
        stock = MagicMock(spec=StockImageService)
        stock.search = AsyncMock(
            return_value={"data": [{"id": 1, "url": "https://img.example.com/1.jpg"}]}
        )
        generator = ContentGenerator(llm_client=llm, stock_images=stock)

        result = await generator.generate_social_post("Iced coffee launch")

        assert result["post_text"] == "Iced coffee season! #coffee"
        assert result["headline"] == "Chill Out"
        assert result["images"][0]["id"] == 1
        stock.search.assert_awaited_once_with("iced coffee", page=1, limit=3)

    @pytest.mark.asyncio
    async def test_social_post_custom_image_skips_search(self) -> None:
        llm = MagicMock(spec=LLMClient)
        llm.generate_json = AsyncMock(return_value={"post_text": "Hello", "headline": "Hi"})
        stock = MagicMock(spec=StockImageService)
        stock.search = AsyncMock()
        generator = ContentGenerator(llm_client=llm, stock_images=stock)

        result = await generator.generate_social_post("Anything", custom_image="data:image/png;base64,AA==")

        assert result["images"] == ["data:image/png;base64,AA=="]
        stock.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_social_post_survives_image_search_failure(self) -> None:
        """Test that a stock search failure still returns the copy."""
        llm = MagicMock(spec=LLMClient)
        llm.generate_json = AsyncMock(return_value={"post_text": "Hello"})
        stock = MagicMock(spec=StockImageService)
        stock.search = AsyncMock(side_effect=ExternalServiceError("freepik", "down", 500))
        generator = ContentGenerator(llm_client=llm, stock_images=stock)

        result = await generator.generate_social_post("Grand opening party tonight")

        assert result["images"] == []
        stock.search.assert_awaited_once_with("Grand opening party", page=1, limit=3)

    @pytest.mark.asyncio
    async def test_social_post_survives_unreachable_freepik(self) -> None:
        """Test that a Freepik timeout still returns the copy with no images."""
        llm = MagicMock(spec=LLMClient)
        llm.generate_json = AsyncMock(
            return_value={"post_text": "Hello", "image_search_query": "bakery"}
        )

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        stock = StockImageService(
            api_key="fp-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        generator = ContentGenerator(llm_client=llm, stock_images=stock)

        result = await generator.generate_social_post("Fresh bread")

        assert result["post_text"] == "Hello"
        assert result["images"] == []
        await stock.close()

    @pytest.mark.asyncio
    async def test_caption_is_stripped(self) -> None:
        llm = MagicMock(spec=LLMClient)
        llm.generate = AsyncMock(return_value="  Come say hi! \n")
        generator = ContentGenerator(llm_client=llm)

        caption = await generator.generate_caption("open house", platform="Instagram")

        assert caption == "Come say hi!"
        kwargs = llm.generate.call_args.kwargs
        assert "Instagram" in kwargs["system_prompt"]
        assert kwargs["max_tokens"] == 500
