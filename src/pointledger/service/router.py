"""FastAPI router for the ledger service.

Implements:
- Named invocations (/invoke)
- Points (/points/*, /owners/*)
- Transactions (/transactions)
- Raw state (/state/*)
- Administration (/admin/*, /audit/*)
"""

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Query, status

from .models import (
    InvokeRequest,
    InvokeResponse,
    OwnerPointsResponse,
    OwnerUpdateRequest,
    Point,
    PointCreateRequest,
    PointDeleteResponse,
    PointIndexResponse,
    RawValueResponse,
    RawWriteRequest,
    ReconcileResponse,
    ResetRequest,
    Transaction,
    TransactionCreateRequest,
    TransactionListResponse,
)

if TYPE_CHECKING:
    from .core import LedgerService


def build_router(service: "LedgerService") -> APIRouter:
    """Build the ledger API router.

    Args:
        service: The LedgerService instance

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    # -----------------------------------------------------------------------
    # Named Invocation
    # -----------------------------------------------------------------------

    @router.post("/invoke", response_model=InvokeResponse)
    def invoke(request: InvokeRequest) -> InvokeResponse:
        """Run a named invocation with ordered string arguments."""
        payload = service.invoke(request.function, request.args)
        return InvokeResponse(
            function=request.function,
            payload=payload.decode("utf-8", errors="replace"),
        )

    # -----------------------------------------------------------------------
    # Point Endpoints
    # -----------------------------------------------------------------------

    @router.post("/points", response_model=Point, status_code=status.HTTP_201_CREATED)
    def create_point(request: PointCreateRequest) -> Point:
        """Register a new point."""
        return Point.from_record(service.create_point(request.id, request.owner))

    @router.get("/points", response_model=PointIndexResponse)
    def list_points() -> PointIndexResponse:
        """List every indexed point id."""
        ids = service.list_points()
        return PointIndexResponse(ids=ids, count=len(ids))

    @router.get("/points/{point_id}", response_model=Point)
    def get_point(point_id: str) -> Point:
        return Point.from_record(service.get_point(point_id))

    @router.put("/points/{point_id}/owner", response_model=Point)
    def transfer_point(point_id: str, request: OwnerUpdateRequest) -> Point:
        """Transfer a point to a new owner."""
        return Point.from_record(service.transfer_point(point_id, request.owner))

    @router.delete("/points/{point_id}", response_model=PointDeleteResponse)
    def delete_point(point_id: str) -> PointDeleteResponse:
        """Delete a point; deleting an unknown id succeeds."""
        removed = service.delete_point(point_id)
        return PointDeleteResponse(id=point_id, index_entries_removed=removed)

    @router.get("/owners/{owner}/points", response_model=OwnerPointsResponse)
    def owner_points(owner: str) -> OwnerPointsResponse:
        """Points owned by ``owner`` (case-insensitive); 404 when none."""
        return OwnerPointsResponse(owner=owner.lower(), ids=service.find_points_by_owner(owner))

    # -----------------------------------------------------------------------
    # Transaction Endpoints
    # -----------------------------------------------------------------------

    @router.post(
        "/transactions",
        response_model=Transaction,
        status_code=status.HTTP_201_CREATED,
    )
    def record_transaction(request: TransactionCreateRequest) -> Transaction:
        """Append a transaction to the log."""
        record = service.record_transaction(
            request.id,
            request.trader_a,
            request.trader_b,
            request.asset_a,
            request.asset_b,
        )
        return Transaction.from_record(record)

    @router.get("/transactions", response_model=TransactionListResponse)
    def list_transactions(
        participant: str | None = Query(default=None),
    ) -> TransactionListResponse:
        """List transactions, optionally filtered by participant substring."""
        if participant is None:
            records = service.all_transactions()
        else:
            records = service.find_transactions(participant)
        transactions = [Transaction.from_record(r) for r in records]
        return TransactionListResponse(transactions=transactions, count=len(transactions))

    # -----------------------------------------------------------------------
    # Raw State Endpoints
    # -----------------------------------------------------------------------

    @router.get("/state/{key}", response_model=RawValueResponse)
    def read_state(key: str) -> RawValueResponse:
        value = service.read_raw(key)
        return RawValueResponse(key=key, value=value.decode("utf-8", errors="replace"))

    @router.put("/state/{key}", response_model=RawValueResponse)
    def write_state(key: str, request: RawWriteRequest) -> RawValueResponse:
        """Raw write. Diagnostic use only; bypasses index consistency."""
        service.write_raw(key, request.value.encode("utf-8"))
        return RawValueResponse(key=key, value=request.value)

    # -----------------------------------------------------------------------
    # Administration
    # -----------------------------------------------------------------------

    @router.post("/admin/reset")
    def reset(request: ResetRequest) -> dict[str, Any]:
        """Clear the index, scratch slots and transaction log."""
        service.reset(request.value)
        return {"status": "reset", "value": request.value}

    @router.post("/admin/reconcile", response_model=ReconcileResponse)
    def reconcile() -> ReconcileResponse:
        """Repair the point index after an interrupted write."""
        return ReconcileResponse(**service.reconcile().to_dict())

    @router.get("/audit/log")
    def audit_log() -> dict[str, Any]:
        """Recent named invocations and their outcome."""
        entries = [entry.model_dump(mode="json") for entry in service.recent_invocations()]
        return {"entries": entries}

    return router
