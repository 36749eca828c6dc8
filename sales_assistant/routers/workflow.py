from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from sales_assistant.config import settings
from sales_assistant.dependencies import get_controller
from sales_assistant.schemas.car import CarDetails
from sales_assistant.schemas.workflow import ActiveImageRequest
from sales_assistant.services.resources import ImageUpload
from sales_assistant.services.workflow import Notice, WorkflowController
from sales_assistant.utils.exceptions import AppException
from sales_assistant.utils.response import notice_response, success_response

router = APIRouter(prefix="/workflow", tags=["workflow"])


def _notice_response(controller: WorkflowController, notice: Notice):
    content = notice_response(notice.ok, notice.message, data=controller.snapshot())
    return JSONResponse(status_code=200 if notice.ok else 502, content=content)


async def _read_upload(file: UploadFile) -> ImageUpload:
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise AppException(f"Файл {file.filename} не є зображенням", status_code=422)
    data = await file.read()
    if len(data) > settings.max_photo_size_bytes:
        raise AppException(f"Файл {file.filename} завеликий", status_code=422)
    return ImageUpload(filename=file.filename or "image", content_type=content_type, data=data)


@router.get("")
async def get_workflow(controller: WorkflowController = Depends(get_controller)):
    return success_response(data=controller.snapshot())


@router.post("/start")
async def start_workflow(
    files: list[UploadFile] = File(...),
    model: str = Form(...),
    year: str = Form(...),
    mileage: str = Form(...),
    price: str = Form(...),
    engine_volume: str = Form("", alias="engineVolume"),
    fuel_type: str = Form("", alias="fuelType"),
    trim_level: str = Form("", alias="trimLevel"),
    additional_info: str = Form("", alias="additionalInfo"),
    controller: WorkflowController = Depends(get_controller),
):
    uploads = [await _read_upload(f) for f in files]
    details = CarDetails(
        model=model,
        year=year,
        mileage=mileage,
        price=price,
        engine_volume=engine_volume,
        fuel_type=fuel_type,
        trim_level=trim_level,
        additional_info=additional_info,
    )
    notice = await controller.start(uploads, details)
    return _notice_response(controller, notice)


@router.post("/generate")
async def generate_ads(controller: WorkflowController = Depends(get_controller)):
    notice = await controller.generate()
    return _notice_response(controller, notice)


@router.post("/back")
async def back_to_review(controller: WorkflowController = Depends(get_controller)):
    controller.back()
    return success_response(data=controller.snapshot())


@router.post("/view-ads")
async def view_existing_ads(controller: WorkflowController = Depends(get_controller)):
    controller.view_ads()
    return success_response(data=controller.snapshot())


@router.post("/reset")
async def reset_workflow(controller: WorkflowController = Depends(get_controller)):
    controller.reset()
    return success_response(data=controller.snapshot())


@router.post("/restore/{item_id}")
async def restore_session(item_id: str, controller: WorkflowController = Depends(get_controller)):
    controller.restore(item_id)
    return success_response(data=controller.snapshot())


@router.put("/active-image")
async def select_active_image(
    payload: ActiveImageRequest,
    controller: WorkflowController = Depends(get_controller),
):
    controller.select_image(payload.index)
    return success_response(data=controller.snapshot())
