"""
HTTP routes for bills.

A thin shim: decode the request, call the repository, return the result.
Identifiers are taken as plain strings so that malformed ones reach the
repository and come back as 400, not as a framework validation error.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Request, Response, status

from bill_ledger.audit import create_correlation_id
from bill_ledger.models.bill import BillDTO, BillView
from bill_ledger.repository import BillRepository


router = APIRouter(prefix="/bills", tags=["bills"])


def get_bill_repository(request: Request) -> BillRepository:
    return request.app.state.bill_repository


def get_correlation_id(
    request: Request,
    x_correlation_id: Optional[str] = Header(default=None),
) -> UUID:
    """
    Use the caller's correlation id when it is a UUID, otherwise start a new one.

    The id is also kept on request.state for the error handlers.
    """
    correlation_id = None
    if x_correlation_id:
        try:
            correlation_id = UUID(x_correlation_id)
        except ValueError:
            pass
    request.state.correlation_id = correlation_id or create_correlation_id()
    return request.state.correlation_id


@router.get("", response_model=list[BillView])
async def get_all_bills(
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.list_all(correlation_id=correlation_id)


@router.get("/user/{user_id}", response_model=list[BillView])
async def get_user_bills(
    user_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.list_by_user(user_id, correlation_id=correlation_id)


@router.get("/user/{user_id}/income", response_model=list[BillView])
async def get_user_income_bills(
    user_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.list_income_by_user(user_id, correlation_id=correlation_id)


@router.get("/user/{user_id}/expense", response_model=list[BillView])
async def get_user_expense_bills(
    user_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.list_expense_by_user(user_id, correlation_id=correlation_id)


@router.get("/user/{user_id}/transaction/{transaction_id}", response_model=list[BillView])
async def get_user_transaction_bills(
    user_id: str,
    transaction_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.list_by_user_and_transaction(
        user_id,
        transaction_id,
        correlation_id=correlation_id,
    )


@router.post(
    "/user/{user_id}/transaction/{transaction_id}",
    status_code=status.HTTP_202_ACCEPTED,
    response_class=Response,
)
async def create_bill(
    user_id: str,
    transaction_id: str,
    payload: BillDTO,
    request: Request,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    bill_id = await repository.create(
        user_id,
        transaction_id,
        payload,
        correlation_id=correlation_id,
    )
    location = request.url_for("get_bill", bill_id=str(bill_id))
    return Response(
        status_code=status.HTTP_202_ACCEPTED,
        headers={"Location": str(location)},
    )


@router.get("/{bill_id}", response_model=BillView)
async def get_bill(
    bill_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.get_by_id(bill_id, correlation_id=correlation_id)


@router.put("/{bill_id}", response_model=BillView)
async def update_bill(
    bill_id: str,
    payload: BillDTO,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    return await repository.update(bill_id, payload, correlation_id=correlation_id)


@router.delete(
    "/{bill_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_bill(
    bill_id: str,
    repository: BillRepository = Depends(get_bill_repository),
    correlation_id: UUID = Depends(get_correlation_id),
):
    await repository.delete(bill_id, correlation_id=correlation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
