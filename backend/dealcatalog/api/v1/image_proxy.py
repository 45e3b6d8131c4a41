"""Image relay endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from dealcatalog.config import settings
from dealcatalog.core.exceptions import DomainNotAllowedError, UpstreamFetchError
from dealcatalog.dependencies import get_image_relay
from dealcatalog.services.image_relay import ImageRelay

router = APIRouter()


@router.get("")
async def proxy_image(
    url: Optional[str] = Query(None, description="Absolute image URL on an allow-listed host"),
    relay: ImageRelay = Depends(get_image_relay),
):
    """Fetch an allow-listed image and return it with a day-long cache header.

    400 when ``url`` is missing, 403 when the host is not allowed, the
    upstream status when the upstream refuses, 500 on network failure.
    """
    if not url:
        return PlainTextResponse("Missing url parameter", status_code=400)

    try:
        image = await relay.fetch(url)
    except DomainNotAllowedError:
        return PlainTextResponse("Domain not allowed", status_code=403)
    except UpstreamFetchError as e:
        if e.status_code is not None:
            return PlainTextResponse("Failed to fetch image", status_code=e.status_code)
        return PlainTextResponse("Error fetching image", status_code=500)

    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": f"public, max-age={settings.IMAGE_CACHE_MAX_AGE}"},
    )
