import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from adapters.entry.http.dtos.strategy_factory_dtos import (
    DeploymentLookupOut,
    DeploymentsOut,
    DeployStrategyRequest,
    FactoryConfigOut,
    FactoryEventOut,
    SetManagementRequest,
    SetPerformanceFeeRecipientRequest,
    StrategyDeploymentOut,
    WithdrawLimitOut,
)
from adapters.entry.http.views.admin.admin_auth import CallerPrincipal, require_wallet
from core.domain.enums.factory_enums import FactoryEventKind
from core.services.exceptions import (
    AlreadyDeployedError,
    IncompatiblePoolError,
    InvalidAddressError,
    InvalidRegistryError,
    StrategyFactoryError,
    TransactionRevertedError,
    UnauthorizedError,
)
from core.use_cases.strategy_factory_usecase import StrategyFactoryUseCase

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/strategy-factory",
    tags=["strategy-factory"],
)

_STATUS_BY_ERROR = {
    InvalidAddressError: 400,
    UnauthorizedError: 403,
    AlreadyDeployedError: 409,
    IncompatiblePoolError: 422,
    InvalidRegistryError: 503,
}


def get_use_case() -> StrategyFactoryUseCase:
    """
    Use case wired from settings (Mongo + Web3 + SiloRepository).
    """
    try:
        return StrategyFactoryUseCase.from_settings()
    except InvalidRegistryError as exc:
        raise HTTPException(status_code=503, detail={"error": exc.code, "message": str(exc)}) from exc
    except StrategyFactoryError as exc:
        raise HTTPException(status_code=500, detail={"error": exc.code, "message": str(exc)}) from exc


def _to_http(exc: Exception, action: str) -> HTTPException:
    if isinstance(exc, StrategyFactoryError):
        status = _STATUS_BY_ERROR.get(type(exc), 400)
        return HTTPException(status_code=status, detail={"error": exc.code, "message": str(exc)})
    if isinstance(exc, TransactionRevertedError):
        return HTTPException(
            status_code=500,
            detail={
                "error": "reverted_on_chain",
                "tx": exc.tx_hash,
                "receipt": exc.receipt,
                "hint": "The strategy constructor or one of its admin setters reverted.",
            },
        )
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    logger.exception("%s failed", action)
    return HTTPException(status_code=500, detail=f"{action} failed: {exc}")


# ---------------------------------------------------------------------- #
# Views
# ---------------------------------------------------------------------- #

@router.get("", response_model=FactoryConfigOut, summary="Current factory configuration")
async def get_factory_config(use_case: StrategyFactoryUseCase = Depends(get_use_case)):
    return use_case.get_config()


@router.get(
    "/deployments/lookup",
    response_model=DeploymentLookupOut,
    summary="isDeployedAsset for an ordered (strategy_asset, collateral_asset) pair",
)
async def lookup_deployment(
    strategy_asset: str = Query(...),
    collateral_asset: str = Query(...),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    try:
        return use_case.lookup(strategy_asset=strategy_asset, collateral_asset=collateral_asset)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/deployments", response_model=DeploymentsOut, summary="Deployed strategies, newest first")
async def list_deployments(
    limit: int = Query(100, ge=1, le=1000),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    return {"items": use_case.list_deployments(limit=limit)}


@router.get("/events", response_model=list[FactoryEventOut], summary="Factory event log, newest first")
async def list_events(
    kind: Optional[FactoryEventKind] = Query(None),
    limit: int = Query(200, ge=1, le=2000),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    return use_case.recent_events(kind=kind.value if kind else None, limit=limit)


@router.get(
    "/strategies/{strategy}/withdraw-limit",
    response_model=WithdrawLimitOut,
    summary="availableWithdrawLimit(owner) of a deployed strategy",
)
async def get_withdraw_limit(
    strategy: str,
    owner: str = Query(...),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    try:
        return use_case.withdraw_limit(strategy=strategy, owner=owner)
    except Exception as exc:
        raise _to_http(exc, "availableWithdrawLimit") from exc


# ---------------------------------------------------------------------- #
# Management commands (backend signs, caller must be the factory management)
# ---------------------------------------------------------------------- #

@router.post("/deploy", response_model=StrategyDeploymentOut, summary="Deploy a Silo strategy")
async def deploy_strategy(
    body: DeployStrategyRequest,
    caller: CallerPrincipal = Depends(require_wallet),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    try:
        return use_case.deploy(
            caller=caller.wallet_address,
            target_management=body.target_management,
            collateral_asset=body.collateral_asset,
            strategy_asset=body.strategy_asset,
            incentives_controller=body.incentives_controller,
            name=body.name,
        )
    except Exception as exc:
        raise _to_http(exc, "deploy") from exc


@router.post("/management", summary="Replace the factory management (single step)")
async def set_management(
    body: SetManagementRequest,
    caller: CallerPrincipal = Depends(require_wallet),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    try:
        return use_case.set_management(caller=caller.wallet_address, new_management=body.management)
    except Exception as exc:
        raise _to_http(exc, "setManagement") from exc


@router.post("/performance-fee-recipient", summary="Replace the fee recipient used for new strategies")
async def set_performance_fee_recipient(
    body: SetPerformanceFeeRecipientRequest,
    caller: CallerPrincipal = Depends(require_wallet),
    use_case: StrategyFactoryUseCase = Depends(get_use_case),
):
    try:
        return use_case.set_performance_fee_recipient(
            caller=caller.wallet_address,
            new_recipient=body.performance_fee_recipient,
        )
    except Exception as exc:
        raise _to_http(exc, "setPerformanceFeeRecipient") from exc
