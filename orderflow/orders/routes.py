from typing import List

from fastapi import APIRouter, Depends

from orderflow.config.factory import get_order_workflow
from orderflow.orders.schemas import OrderCreate, OrderResponse
from orderflow.orders.service import OrderWorkflow
from orderflow.shared.schemas import ErrorResponse

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_order_endpoint(payload: OrderCreate, workflow: OrderWorkflow = Depends(get_order_workflow)):
    return await workflow.create_order(payload)


@router.get("/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order_endpoint(order_id: int, workflow: OrderWorkflow = Depends(get_order_workflow)):
    return await workflow.get_order(order_id)


@router.get("", response_model=List[OrderResponse])
async def list_orders_endpoint(workflow: OrderWorkflow = Depends(get_order_workflow)):
    return await workflow.list_orders()
