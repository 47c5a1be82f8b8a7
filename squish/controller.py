import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse
from redis.asyncio import Redis

from squish.dependencies import get_context, get_redis, get_store
from squish.exceptions import InvalidInput, NotFound, SquishError
from squish.models import ShortLink
from squish.repository import AliasStore
from squish.services import ShortenerContext, findOriginalURL, shortenLink

logger = logging.getLogger(__name__)
router = APIRouter()

NOT_FOUND_MESSAGE = (
    "The resource you're looking for can't be found. Maybe it was already deleted? "
    "Links only stay valid for 7 days."
)
INPUT_ERROR_MESSAGE = (
    "Something went wrong while trying to read your input. Is it a valid URL? "
    "(it must start with http:// or https://, or have no scheme at all)"
)
UNEXPECTED_ERROR_MESSAGE = (
    "An unexpected error occurred. If this persists please reach out and let me know."
)


# Routes
@router.get("/health")
def health_check():
    health_status = {"status": "healthy"}
    logger.info("Health Check: OK")
    return JSONResponse(content=health_status, status_code=status.HTTP_200_OK)


@router.post("/s", response_model=ShortLink)
async def shorten(
    context: Annotated[ShortenerContext, Depends(get_context)],
    store: Annotated[AliasStore, Depends(get_store)],
    redis: Annotated[Optional[Redis], Depends(get_redis)],
    link: str = Body(..., embed=True),
):
    try:
        return await shortenLink(context, store, redis, link)

    except InvalidInput as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": INPUT_ERROR_MESSAGE, "detail": str(exc)},
        )

    except SquishError as exc:
        logger.error(f"Error shortening URL: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": UNEXPECTED_ERROR_MESSAGE, "detail": str(exc)},
        )


@router.get("/s/{alias}")
async def redirect(
    store: Annotated[AliasStore, Depends(get_store)],
    redis: Annotated[Optional[Redis], Depends(get_redis)],
    alias: str,
):
    try:
        original_url = await findOriginalURL(store, redis, alias)
        return RedirectResponse(url=original_url)

    except NotFound as exc:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": NOT_FOUND_MESSAGE, "detail": str(exc)},
        )

    except SquishError as exc:
        logger.error(f"Error redirecting URL: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": UNEXPECTED_ERROR_MESSAGE, "detail": str(exc)},
        )
