"""Photo proxy: forwards Google Places photo bytes so the API key never reaches the browser."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.deps import Container, get_container
from app.core.constants import PHOTO_CACHE_CONTROL
from app.core.errors import ProviderError, error_to_http

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/photo")
def place_photo(
    photo_ref: str = Query(..., alias="photoRef", min_length=1),
    container: Container = Depends(get_container),
) -> Response:
    try:
        photo = container.places.fetch_photo(photo_ref)
    except ProviderError as e:
        logger.warning("photo proxy failed for %s: %s", photo_ref, e)
        if e.http_status is not None:
            # Google answered: pass its status through
            raise HTTPException(status_code=e.http_status, detail=str(e)) from e
        raise error_to_http(e) from e
    headers = {"Cache-Control": PHOTO_CACHE_CONTROL}
    return Response(content=photo.content, media_type=photo.content_type, headers=headers)
