from fastapi import APIRouter, Depends

from sales_assistant.dependencies import get_controller
from sales_assistant.services.workflow import WorkflowController
from sales_assistant.utils.response import success_response

router = APIRouter(prefix="/history", tags=["history"])


def _dump(controller: WorkflowController) -> list[dict]:
    return [item.model_dump(mode="json", by_alias=True) for item in controller.history]


@router.get("")
async def list_history(controller: WorkflowController = Depends(get_controller)):
    await controller.load_history()
    return success_response(data=_dump(controller))


@router.delete("/{item_id}")
async def delete_history_item(item_id: str, controller: WorkflowController = Depends(get_controller)):
    await controller.delete_history(item_id)
    return success_response(data=_dump(controller))
