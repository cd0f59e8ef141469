"""Company/warehouse-scoped transaction file endpoints.

Handles file upload + synchronous ingestion, and transaction file lookups.
"""

import logging
from pathlib import Path, PurePath
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from backend.api.deps import get_company_id, get_warehouse_id
from backend.core import events, graph_ops
from backend.core.config import settings
from backend.core.errors import ProfileError
from backend.core.id_gen import TRANSACTION_FILE_PREFIX, generate_id
from backend.core.ingestion_engine import run_ingest
from backend.core.models import (
    TransactionFileModel,
    TransactionFileResponse,
    TransactionFileUploadResponse,
)
from backend.core.profile_loader import load_profile
from backend.core.row_source import NOT_IMPLEMENTED_EXTENSIONS, ROW_SOURCES, file_extension

logger = logging.getLogger(__name__)

router = APIRouter()


def _raw_dir(company_id: str, warehouse_id: str) -> Path:
    return settings.project_root / settings.raw_data_dir / company_id / warehouse_id


@router.post("/transaction-files", response_model=TransactionFileUploadResponse)
async def upload_transaction_file(
    file: UploadFile = File(...),
    profile_name: Optional[str] = Form(None),
    company_id: str = Depends(get_company_id),
    warehouse_id: str = Depends(get_warehouse_id),
):
    """Upload a transaction file and ingest it into the warehouse.

    - **file**: CSV (.csv) or Excel (.xlsx) file
    - **profile_name**: Ingestion profile (without .yaml extension), optional
    """
    file_name = PurePath(file.filename or "").name
    ext = file_extension(file_name)
    if ext in NOT_IMPLEMENTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"{ext} parsing not implemented")
    if ext not in ROW_SOURCES:
        supported = ", ".join(sorted(ROW_SOURCES))
        raise HTTPException(status_code=400, detail=f"Only {supported} files are supported")

    try:
        profile = load_profile(profile_name)
    except ProfileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    transaction_file_id = generate_id(TRANSACTION_FILE_PREFIX)

    # Save uploaded file
    upload_dir = _raw_dir(company_id, warehouse_id)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{transaction_file_id}_{file_name}"
    content = await file.read()
    file_path.write_bytes(content)

    try:
        graph_ops.create_transaction_file(TransactionFileModel(
            transaction_file_id=transaction_file_id,
            company_id=company_id,
            warehouse_id=warehouse_id,
            file_name=file_name,
            file_extension=ext,
            file_path_url=str(file_path),
        ))
    except Exception as e:
        logger.error(f"Failed to register transaction file {file_name}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to register transaction file: {e}")

    # Run ingestion synchronously
    result = run_ingest(
        data=content,
        file_name=file_name,
        transaction_file_id=transaction_file_id,
        company_id=company_id,
        warehouse_id=warehouse_id,
        profile=profile,
    )

    events.publish_transaction_file_uploaded(
        company_id, transaction_file_id, result.records_created, result.status,
    )

    if result.ok:
        message = f"Ingested {result.records_created} transaction records"
    else:
        message = f"Ingestion {result.status} after {result.records_created} records: {result.error}"

    return TransactionFileUploadResponse(
        transaction_file_id=transaction_file_id,
        status=result.status,
        records_created=result.records_created,
        message=message,
        stats=result.stats,
    )


@router.get("/transaction-files/{transaction_file_id}", response_model=TransactionFileResponse)
async def get_transaction_file(
    transaction_file_id: str,
    company_id: str = Depends(get_company_id),
    warehouse_id: str = Depends(get_warehouse_id),
):
    """Get details of a transaction file."""
    tf = graph_ops.get_transaction_file(company_id, transaction_file_id)
    if not tf or tf.warehouse_id != warehouse_id:
        raise HTTPException(status_code=404, detail="Transaction file not found")
    return TransactionFileResponse(**tf.model_dump())
