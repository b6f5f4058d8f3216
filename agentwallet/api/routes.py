"""HTTP routes for the AgentWallet administration API.

Operator surface only: inspect wallets, change policies, pause and resume,
resolve approvals. No route starts a transfer.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request

from agentwallet.api.models import (
    ApprovalResponse,
    FleetActionResponse,
    FleetSummaryResponse,
    ImportWalletRequest,
    RejectRequest,
    TransactionResponse,
    UpdatePolicyRequest,
    WalletResponse,
)
from agentwallet.agent_wallet import AgentWallet
from agentwallet.exceptions import (
    ApprovalAlreadyResolved,
    DecryptionError,
    DuplicateAgent,
    UnknownAgent,
    UnknownApproval,
)
from agentwallet.fleet_registry import FleetRegistry
from agentwallet.models import PolicyUpdate


router = APIRouter()


def get_registry(req: Request) -> FleetRegistry:
    registry = getattr(req.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("Fleet registry not initialized")
    return registry


def _get_wallet(registry: FleetRegistry, agent_id: str) -> AgentWallet:
    try:
        return registry.get(agent_id)
    except UnknownAgent as e:
        raise HTTPException(status_code=404, detail=str(e))


# ------- Wallets -------

@router.get("/wallets", response_model=List[WalletResponse])
def list_wallets(registry: FleetRegistry = Depends(get_registry)) -> List[WalletResponse]:
    return [WalletResponse.from_wallet(w) for w in registry.list_wallets()]


@router.post("/wallets/import", response_model=WalletResponse, status_code=201)
def import_wallet(payload: ImportWalletRequest, registry: FleetRegistry = Depends(get_registry)) -> WalletResponse:
    try:
        wallet = registry.import_agent(
            payload.envelope,
            payload.passphrase,
            agent_id=payload.agent_id,
            agent_name=payload.agent_name,
            role=payload.role,
        )
    except DecryptionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateAgent as e:
        raise HTTPException(status_code=409, detail=str(e))
    return WalletResponse.from_wallet(wallet)


@router.get("/wallets/{agent_id}", response_model=WalletResponse)
def get_wallet(agent_id: str, registry: FleetRegistry = Depends(get_registry)) -> WalletResponse:
    return WalletResponse.from_wallet(_get_wallet(registry, agent_id))


@router.patch("/wallets/{agent_id}/policy", response_model=WalletResponse)
def update_policy(agent_id: str, payload: UpdatePolicyRequest,
                  registry: FleetRegistry = Depends(get_registry)) -> WalletResponse:
    wallet = _get_wallet(registry, agent_id)
    try:
        update = PolicyUpdate.from_fields(**payload.model_dump(exclude_unset=True))
        wallet.update_policy(update)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return WalletResponse.from_wallet(wallet)


@router.post("/wallets/{agent_id}/pause", response_model=WalletResponse)
def pause_wallet(agent_id: str, registry: FleetRegistry = Depends(get_registry)) -> WalletResponse:
    _get_wallet(registry, agent_id)
    return WalletResponse.from_wallet(registry.pause(agent_id))


@router.post("/wallets/{agent_id}/resume", response_model=WalletResponse)
def resume_wallet(agent_id: str, registry: FleetRegistry = Depends(get_registry)) -> WalletResponse:
    _get_wallet(registry, agent_id)
    return WalletResponse.from_wallet(registry.resume(agent_id))


@router.get("/wallets/{agent_id}/audit", response_model=List[TransactionResponse])
def get_audit_log(agent_id: str, registry: FleetRegistry = Depends(get_registry)) -> List[TransactionResponse]:
    wallet = _get_wallet(registry, agent_id)
    return [TransactionResponse.from_record(r) for r in wallet.get_audit_log()]


# ------- Approvals -------

@router.get("/wallets/{agent_id}/approvals", response_model=List[ApprovalResponse])
def list_approvals(agent_id: str, status: Optional[str] = None,
                   registry: FleetRegistry = Depends(get_registry)) -> List[ApprovalResponse]:
    wallet = _get_wallet(registry, agent_id)
    approvals = wallet.list_approvals()
    if status is not None:
        approvals = [a for a in approvals if a.status.value == status]
    return [ApprovalResponse.from_approval(a) for a in approvals]


@router.post("/wallets/{agent_id}/approvals/{approval_id}/approve", response_model=TransactionResponse)
async def approve(agent_id: str, approval_id: str,
                  registry: FleetRegistry = Depends(get_registry)) -> TransactionResponse:
    wallet = _get_wallet(registry, agent_id)
    try:
        record = await wallet.approve(approval_id)
    except UnknownApproval as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ApprovalAlreadyResolved as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TransactionResponse.from_record(record)


@router.post("/wallets/{agent_id}/approvals/{approval_id}/reject", response_model=ApprovalResponse)
def reject(agent_id: str, approval_id: str, payload: Optional[RejectRequest] = None,
           registry: FleetRegistry = Depends(get_registry)) -> ApprovalResponse:
    wallet = _get_wallet(registry, agent_id)
    reason = payload.reason if payload is not None else None
    try:
        approval = wallet.reject(approval_id, reason=reason)
    except UnknownApproval as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ApprovalAlreadyResolved as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ApprovalResponse.from_approval(approval)


# ------- Fleet -------

@router.post("/fleet/pause", response_model=FleetActionResponse)
def pause_fleet(registry: FleetRegistry = Depends(get_registry)) -> FleetActionResponse:
    return FleetActionResponse(affected=registry.pause_all())


@router.post("/fleet/resume", response_model=FleetActionResponse)
def resume_fleet(registry: FleetRegistry = Depends(get_registry)) -> FleetActionResponse:
    return FleetActionResponse(affected=registry.resume_all())


@router.get("/fleet/summary", response_model=FleetSummaryResponse)
def fleet_summary(registry: FleetRegistry = Depends(get_registry)) -> FleetSummaryResponse:
    summary = registry.summary()
    return FleetSummaryResponse(**summary.model_dump())
