"""Tests for throne_saga.client - the game service HTTP client."""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from throne_saga.client import ApiClient, ApiError
from throne_saga.errors import StoryGenerationError
from throne_saga.models import HistoryEntry
from throne_saga.story import fallback_node

from stubs import make_character, make_node


def _mock_response(body, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


@pytest.fixture
def client() -> ApiClient:
    return ApiClient("http://localhost:4000/")


class TestStory:
    async def test_generate_start(self, client: ApiClient) -> None:
        node = make_node(speaker="Ned", dialogue="Winter.")
        mock_post = AsyncMock(return_value=_mock_response(node.model_dump(mode="json")))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await client.generate_start(make_character())
        assert result == node
        assert mock_post.call_args[0][0] == "http://localhost:4000/api/story/start"
        assert mock_post.call_args.kwargs["json"]["character"]["house"] == "Stark"

    async def test_generate_start_error_raises(self, client: ApiClient) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"error": "boom"}, status=500))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(StoryGenerationError):
                await client.generate_start(make_character())

    async def test_generate_start_bad_body_raises(self, client: ApiClient) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"narrative": "half a node"}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(StoryGenerationError):
                await client.generate_start(make_character())

    async def test_generate_turn_body(self, client: ApiClient) -> None:
        mock_post = AsyncMock(return_value=_mock_response(make_node().model_dump(mode="json")))
        history = [HistoryEntry.narrative("Snow."), HistoryEntry.choice("Ride south")]
        with patch("httpx.AsyncClient.post", mock_post):
            await client.generate_turn(history, make_character(), "Ride south", 3, 15)
        assert mock_post.call_args[0][0] == "http://localhost:4000/api/story/turn"
        sent = mock_post.call_args.kwargs["json"]
        assert sent["lastChoice"] == "Ride south"
        assert sent["turnCount"] == 3
        assert sent["maxTurns"] == 15
        assert sent["history"] == [
            {"type": "narrative", "text": "Snow."},
            {"type": "choice", "text": "Ride south"},
        ]

    async def test_generate_turn_failure_returns_fallback(self, client: ApiClient) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            node = await client.generate_turn([], make_character(), "x", 2, 15)
        assert node == fallback_node()


class TestImages:
    async def test_scene_image(self, client: ApiClient) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"image": "data:image/png;base64,AA"}))
        with patch("httpx.AsyncClient.post", mock_post):
            image = await client.scene_image("A burning sept")
        assert image == "data:image/png;base64,AA"
        assert mock_post.call_args.kwargs["json"] == {"visualDescription": "A burning sept"}

    async def test_portrait_null(self, client: ApiClient) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"image": None}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await client.portrait("Varys") is None
        assert mock_post.call_args[0][0] == "http://localhost:4000/api/images/portrait"

    async def test_image_failure_returns_none(self, client: ApiClient) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("slow"))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await client.scene_image("A burning sept") is None


class TestHealth:
    async def test_health(self, client: ApiClient) -> None:
        mock_get = AsyncMock(return_value=_mock_response({"status": "ok"}))
        with patch("httpx.AsyncClient.get", mock_get):
            assert await client.health() == {"status": "ok"}
        assert mock_get.call_args[0][0] == "http://localhost:4000/healthz"

    async def test_health_connect_error(self, client: ApiClient) -> None:
        mock_get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(ApiError, match="Cannot connect"):
                await client.health()


class TestTransportFailures:
    async def test_read_error_on_turn_returns_fallback(self, client: ApiClient) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadError("connection reset"))
        with patch("httpx.AsyncClient.post", mock_post):
            node = await client.generate_turn([], make_character(), "x", 2, 15)
        assert node == fallback_node()

    async def test_read_error_on_images_returns_none(self, client: ApiClient) -> None:
        mock_post = AsyncMock(side_effect=httpx.RemoteProtocolError("bad frame"))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await client.scene_image("A burning sept") is None
            assert await client.portrait("Varys") is None

    async def test_read_error_raises_api_error(self, client: ApiClient) -> None:
        mock_get = AsyncMock(side_effect=httpx.ReadError("connection reset"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(ApiError, match="request failed"):
                await client.health()
