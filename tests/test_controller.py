import re
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient

from squish.controller import router
from squish.dependencies import get_context, get_redis, get_store
from squish.exceptions import ExhaustedKeyspace, InvalidInput, NotFound, StorageError
from squish.models import ShortLink

TEST_BASE_URL = "http://test"
EXAMPLE_URL = "https://example.com"
TEST_ALIAS = "Quietotter42"


# Fixtures
@pytest.fixture
def test_app(context, store):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides.update(
        {
            get_context: lambda: context,
            get_store: lambda: store,
            get_redis: lambda: None,
        }
    )
    return app


@pytest.fixture
async def async_client(test_app):
    async with AsyncClient(
        transport=ASGITransport(app=test_app), base_url=TEST_BASE_URL
    ) as client:
        yield client


# Test routes
@pytest.mark.asyncio
async def test_health_check(async_client):
    response = await async_client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_shorten_then_redirect(async_client, store):
    response = await async_client.post("/s", json={"link": "example.com/page"})

    assert response.status_code == status.HTTP_200_OK
    link = response.json()["link"]
    assert re.match(r"^http://x/[A-Z][a-z]+[a-z]+[0-9]{1,3}$", link)

    alias = link.removeprefix("http://x/")
    response = await async_client.get(f"/s/{alias}")

    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
    assert response.headers["location"] == "https://example.com/page"


@pytest.mark.asyncio
async def test_shorten_invalid_input(async_client):
    response = await async_client.post("/s", json={"link": "not a url"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Invalid URL 'not a url'" in response.json()["detail"]


@pytest.mark.asyncio
async def test_shorten_missing_body(async_client):
    response = await async_client.post("/s", json={})
    assert response.status_code == 422


@pytest.mark.asyncio
@patch("squish.controller.shortenLink", new_callable=AsyncMock)
async def test_shorten_success_response(mock_shorten_link, async_client):
    mock_shorten_link.return_value = ShortLink(link=f"http://x/{TEST_ALIAS}")

    response = await async_client.post("/s", json={"link": EXAMPLE_URL})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"link": f"http://x/{TEST_ALIAS}"}
    assert mock_shorten_link.call_args.args[-1] == EXAMPLE_URL


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [StorageError("exists", "connection refused"), ExhaustedKeyspace(10)],
)
@patch("squish.controller.shortenLink", new_callable=AsyncMock)
async def test_shorten_internal_errors(mock_shorten_link, async_client, error):
    mock_shorten_link.side_effect = error

    response = await async_client.post("/s", json={"link": EXAMPLE_URL})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert str(error) in response.json()["detail"]


@pytest.mark.asyncio
@patch("squish.controller.shortenLink", new_callable=AsyncMock)
async def test_shorten_invalid_input_from_service(mock_shorten_link, async_client):
    mock_shorten_link.side_effect = InvalidInput("ftp://x", "scheme 'ftp' is not allowed")

    response = await async_client.post("/s", json={"link": "ftp://x"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "http:// or https://" in response.json()["error"]


@pytest.mark.asyncio
async def test_redirect_not_found(async_client):
    response = await async_client.get("/s/NonexistentAlias123")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert (
        "Original URL not found for identifier: NonexistentAlias123"
        in response.json()["detail"]
    )
    assert "7 days" in response.json()["error"]


@pytest.mark.asyncio
@patch("squish.controller.findOriginalURL", new_callable=AsyncMock)
async def test_redirect_success(mock_find_original_url, async_client):
    mock_find_original_url.return_value = EXAMPLE_URL

    response = await async_client.get(f"/s/{TEST_ALIAS}")

    assert mock_find_original_url.called
    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
    assert response.headers["location"] == EXAMPLE_URL


@pytest.mark.asyncio
@patch("squish.controller.findOriginalURL", new_callable=AsyncMock)
async def test_redirect_storage_error(mock_find_original_url, async_client):
    mock_find_original_url.side_effect = StorageError("resolve", "timeout")

    response = await async_client.get(f"/s/{TEST_ALIAS}")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "Storage operation 'resolve' failed" in response.json()["detail"]


@pytest.mark.asyncio
@patch("squish.controller.findOriginalURL", new_callable=AsyncMock)
async def test_redirect_not_found_from_service(mock_find_original_url, async_client):
    mock_find_original_url.side_effect = NotFound("Original URL", TEST_ALIAS)

    response = await async_client.get(f"/s/{TEST_ALIAS}")

    assert response.status_code == status.HTTP_404_NOT_FOUND
