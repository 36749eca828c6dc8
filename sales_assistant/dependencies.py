from fastapi import Header, HTTPException, Request

from sales_assistant.config import settings
from sales_assistant.services.resources import ResourceLifecycle
from sales_assistant.services.workflow import WorkflowController


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_controller(request: Request) -> WorkflowController:
    return request.app.state.controller


def get_resources(request: Request) -> ResourceLifecycle:
    return request.app.state.resources
