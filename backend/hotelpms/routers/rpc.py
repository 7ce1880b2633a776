"""
存储过程调用路由
"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hotelpms.database import get_db
from hotelpms.models.ontology import Staff
from hotelpms.services.rpc import rpc_registry, ProcedureNotFound
from hotelpms.security.auth import get_current_user

router = APIRouter(prefix="/rpc", tags=["存储过程"])


@router.get("", response_model=List[str])
def list_procedures(current_user: Staff = Depends(get_current_user)):
    return rpc_registry.names()


@router.post("/{name}")
def call_procedure(
    name: str,
    params: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
    current_user: Staff = Depends(get_current_user)
):
    """按名称调用存储过程，参数为 JSON 对象"""
    try:
        return {"data": rpc_registry.call(name, db, **(params or {}))}
    except ProcedureNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
