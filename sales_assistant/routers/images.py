from fastapi import APIRouter, Depends
from fastapi.responses import Response

from sales_assistant.dependencies import get_resources
from sales_assistant.services.resources import ResourceLifecycle
from sales_assistant.utils.exceptions import AppException

router = APIRouter(prefix="/images", tags=["images"])


@router.get("/{handle}")
async def get_image(handle: str, resources: ResourceLifecycle = Depends(get_resources)):
    upload = resources.resolve(handle)
    if upload is None:
        raise AppException("Зображення недоступне", status_code=404)
    return Response(content=upload.data, media_type=upload.content_type)
